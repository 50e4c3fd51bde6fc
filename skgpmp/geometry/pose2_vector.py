import numpy as np

from skgpmp.geometry.math import wrap_angle


class Pose2Vector(object):
    """Planar base pose combined with a joint configuration.

    The state of a mobile manipulator is a planar pose ``(x, y, theta)``
    of the base and a joint configuration vector of the mounted arm.
    Optimizers see it through its vector form
    ``[x, y, theta, q_1, ..., q_n]``; the heading is kept wrapped into
    [-pi, pi).

    Parameters
    ----------
    pose : array-like
        planar base pose (x, y, theta).
    configuration : array-like
        joint configuration of the arm.
    """

    def __init__(self, pose, configuration):
        pose = np.array(pose, dtype=np.float64).reshape(-1)
        if pose.shape != (3,):
            raise ValueError(
                'pose must be (x, y, theta), but got shape {}'.format(
                    pose.shape))
        pose[2] = wrap_angle(pose[2])
        self.pose = pose
        self.configuration = np.array(
            configuration, dtype=np.float64).reshape(-1)

    @property
    def dim(self):
        return 3 + len(self.configuration)

    def to_vector(self):
        return np.concatenate([self.pose, self.configuration])

    @classmethod
    def from_vector(cls, vec):
        vec = np.asarray(vec, dtype=np.float64)
        return cls(vec[:3], vec[3:])

    def retract(self, delta):
        """Return a new Pose2Vector moved by ``delta`` in vector form."""
        delta = np.asarray(delta, dtype=np.float64)
        return Pose2Vector(self.pose + delta[:3],
                           self.configuration + delta[3:])

    def local_coordinates(self, other):
        """Return ``other - self`` with the heading difference wrapped."""
        diff = other.to_vector() - self.to_vector()
        diff[2] = wrap_angle(diff[2])
        return diff

    def equals(self, other, tol=1e-9):
        if not isinstance(other, Pose2Vector):
            return False
        if other.dim != self.dim:
            return False
        return bool(np.all(np.abs(self.local_coordinates(other)) <= tol))

    def copy(self):
        return Pose2Vector(self.pose.copy(), self.configuration.copy())

    def __repr__(self):
        return 'Pose2Vector(pose={}, configuration={})'.format(
            self.pose.tolist(), self.configuration.tolist())

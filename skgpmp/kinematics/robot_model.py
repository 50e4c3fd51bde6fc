"""Robot body models for collision checking.

A robot body is approximated by a set of spheres rigidly attached to the
links of a kinematic chain. Obstacle cost factors only need the world
centers of these spheres, their radii and the Jacobians of the centers
with respect to the robot state.
"""

from abc import ABC
from abc import abstractmethod

import numpy as np

from skgpmp.geometry import Pose2Vector
from skgpmp.gp.interpolator import GaussianProcessInterpolator


class BodySphere(object):
    """Sphere attached to a robot link.

    Parameters
    ----------
    link_id : int
        index of the link the sphere is attached to.
    radius : float
        sphere radius.
    center : array-like
        sphere center in the link frame.
    """

    def __init__(self, link_id, radius, center):
        self.link_id = int(link_id)
        self.radius = float(radius)
        self.center = np.asarray(center, dtype=np.float64).reshape(3)

    def __repr__(self):
        return 'BodySphere(link_id={}, radius={}, center={})'.format(
            self.link_id, self.radius, self.center.tolist())


class RobotModel(ABC):
    """Interface of robot models consumed by the trajectory optimizer.

    Parameters
    ----------
    body_spheres : list[BodySphere]
        sphere decomposition of the robot body.
    """

    def __init__(self, body_spheres):
        self.body_spheres = list(body_spheres)
        self._link_ids = np.array(
            [s.link_id for s in self.body_spheres], dtype=np.int64)
        self._local_centers = np.array(
            [s.center for s in self.body_spheres],
            dtype=np.float64).reshape(-1, 3)
        self._radii = np.array(
            [s.radius for s in self.body_spheres], dtype=np.float64)

    @property
    @abstractmethod
    def dof(self):
        pass

    @property
    def nr_body_spheres(self):
        return len(self.body_spheres)

    @property
    def sphere_radii(self):
        return self._radii

    @abstractmethod
    def sphere_centers(self, pose, with_jacobian=False):
        """World centers of the body spheres.

        Parameters
        ----------
        pose : numpy.ndarray or Pose2Vector
            robot pose.
        with_jacobian : bool
            if True, also return the Jacobians.

        Returns
        -------
        centers : numpy.ndarray
            (nr_body_spheres, 3) world sphere centers.
        jacobians : numpy.ndarray
            (nr_body_spheres, 3, dof) Jacobians w.r.t. the vector form of
            ``pose``. Only if with_jacobian.
        """
        pass

    def interpolate(self, pose1, vel1, pose2, vel2, delta_t, tau):
        """Interpolate pose and velocity at ``tau`` with the GP prior.

        Returns
        -------
        pose : numpy.ndarray or Pose2Vector
            interpolated pose.
        vel : numpy.ndarray
            interpolated velocity.
        """
        interpolator = GaussianProcessInterpolator(delta_t, tau)
        return (interpolator.interpolate_pose(pose1, vel1, pose2, vel2),
                interpolator.interpolate_velocity(pose1, vel1, pose2, vel2))


class ArmModel(RobotModel):
    """Arm with a sphere body decomposition.

    Parameters
    ----------
    arm : skgpmp.kinematics.Arm
        arm kinematics.
    body_spheres : list[BodySphere]
        spheres attached to the arm links.
    """

    def __init__(self, arm, body_spheres):
        super(ArmModel, self).__init__(body_spheres)
        for sphere in self.body_spheres:
            if not 0 <= sphere.link_id < arm.dof:
                raise ValueError(
                    'sphere link_id {} out of range for {} links'.format(
                        sphere.link_id, arm.dof))
        self.arm = arm

    @property
    def dof(self):
        return self.arm.dof

    def sphere_centers(self, pose, with_jacobian=False):
        return self.arm.points(np.asarray(pose, dtype=np.float64),
                               self._link_ids, self._local_centers,
                               with_jacobian=with_jacobian)


class Pose2MobileArmModel(RobotModel):
    """Mobile manipulator with a sphere body decomposition.

    Parameters
    ----------
    marm : skgpmp.kinematics.Pose2MobileArm
        mobile arm kinematics.
    body_spheres : list[BodySphere]
        spheres attached to the links; link 0 is the mobile base.
    """

    def __init__(self, marm, body_spheres):
        super(Pose2MobileArmModel, self).__init__(body_spheres)
        for sphere in self.body_spheres:
            if not 0 <= sphere.link_id <= marm.arm.dof:
                raise ValueError(
                    'sphere link_id {} out of range for {} links'.format(
                        sphere.link_id, marm.arm.dof + 1))
        self.marm = marm

    @property
    def dof(self):
        return self.marm.dof

    def sphere_centers(self, pose, with_jacobian=False):
        if not isinstance(pose, Pose2Vector):
            pose = Pose2Vector.from_vector(pose)
        return self.marm.points(pose, self._link_ids, self._local_centers,
                                with_jacobian=with_jacobian)

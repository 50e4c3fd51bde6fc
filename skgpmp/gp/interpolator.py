import numpy as np

from skgpmp.geometry import dimension
from skgpmp.geometry import local_coordinates
from skgpmp.geometry import retract
from skgpmp.gp.gp_utils import interpolation_coefficients


class GaussianProcessInterpolator(object):
    """Interpolate a state between two support states with the GP prior.

    The interpolated pose and velocity at ``tau`` (0 <= tau <= delta_t
    after the earlier support state) are the posterior mean of the
    constant-velocity GP given both support states::

        x_tau = x1 + Psi11 (x2 - x1) + Lambda12 v1 + Psi12 v2
        v_tau = Psi21 (x2 - x1) + Lambda22 v1 + Psi22 v2

    where ``x2 - x1`` is taken in local coordinates, which keeps the
    heading of a :class:`skgpmp.geometry.Pose2Vector` wrapped.

    Parameters
    ----------
    delta_t : float
        time between the two support states.
    tau : float
        interpolation time measured from the earlier support state.
    """

    def __init__(self, delta_t, tau):
        if delta_t <= 0:
            raise ValueError('delta_t must be positive, but got {}'.format(
                delta_t))
        if not 0.0 <= tau <= delta_t:
            raise ValueError(
                'tau must be in [0, delta_t], but got {}'.format(tau))
        self.delta_t = float(delta_t)
        self.tau = float(tau)
        lam, psi = interpolation_coefficients(self.delta_t, self.tau)
        self.lam = lam
        self.psi = psi

    def interpolate_pose(self, pose1, vel1, pose2, vel2,
                         with_jacobians=False):
        """Interpolate the pose.

        Returns
        -------
        pose : numpy.ndarray or Pose2Vector
            interpolated pose, of the same type as ``pose1``.
        jacobians : list[numpy.ndarray]
            (dof, dof) Jacobians w.r.t. pose1, vel1, pose2, vel2.
            Only if with_jacobians.
        """
        lam, psi = self.lam, self.psi
        delta = (psi[0, 0] * local_coordinates(pose1, pose2)
                 + lam[0, 1] * np.asarray(vel1, dtype=np.float64)
                 + psi[0, 1] * np.asarray(vel2, dtype=np.float64))
        pose = retract(pose1, delta)
        if not with_jacobians:
            return pose
        eye = np.eye(dimension(pose1))
        jacobians = [(1.0 - psi[0, 0]) * eye,
                     lam[0, 1] * eye,
                     psi[0, 0] * eye,
                     psi[0, 1] * eye]
        return pose, jacobians

    def interpolate_velocity(self, pose1, vel1, pose2, vel2,
                             with_jacobians=False):
        """Interpolate the velocity.

        Returns
        -------
        vel : numpy.ndarray
            interpolated velocity.
        jacobians : list[numpy.ndarray]
            (dof, dof) Jacobians w.r.t. pose1, vel1, pose2, vel2.
            Only if with_jacobians.
        """
        lam, psi = self.lam, self.psi
        vel = (psi[1, 0] * local_coordinates(pose1, pose2)
               + lam[1, 1] * np.asarray(vel1, dtype=np.float64)
               + psi[1, 1] * np.asarray(vel2, dtype=np.float64))
        if not with_jacobians:
            return vel
        eye = np.eye(dimension(pose1))
        jacobians = [-psi[1, 0] * eye,
                     lam[1, 1] * eye,
                     psi[1, 0] * eye,
                     psi[1, 1] * eye]
        return vel, jacobians

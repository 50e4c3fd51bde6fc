import numpy as np

from skgpmp.factor_graph import NoiseModel
from skgpmp.factor_graph import NoiseModelFactor
from skgpmp.geometry import dimension
from skgpmp.geometry import local_coordinates
from skgpmp.gp.gp_utils import calc_q_inv
from skgpmp.gp.gp_utils import qc_matrix


class GaussianProcessPriorFactor(NoiseModelFactor):
    """Constant-velocity GP prior between two consecutive support states.

    The residual is the deviation from the noise-free motion::

        e = [ (x2 - x1) - delta_t v1 ;
              v2 - v1 ]

    whitened by ``Q(delta_t)^-1``.

    Parameters
    ----------
    pose_key1, vel_key1, pose_key2, vel_key2 : tuple
        state keys of the earlier and later support states.
    delta_t : float
        time between the support states.
    qc : numpy.ndarray or float
        (dof, dof) power spectral density, or a scalar meaning ``qc * I``.
    dof : int or None
        state dimension. Required when ``qc`` is a scalar.
    """

    def __init__(self, pose_key1, vel_key1, pose_key2, vel_key2,
                 delta_t, qc, dof=None):
        if delta_t <= 0:
            raise ValueError('delta_t must be positive, but got {}'.format(
                delta_t))
        if dof is None:
            dof = np.atleast_2d(qc).shape[0]
        qc = qc_matrix(qc, dof)
        self.delta_t = float(delta_t)
        self.qc = qc
        self.dof = dof
        noise_model = NoiseModel.from_information(calc_q_inv(qc, delta_t))
        super(GaussianProcessPriorFactor, self).__init__(
            (pose_key1, vel_key1, pose_key2, vel_key2), noise_model)

    def evaluate_error(self, pose1, vel1, pose2, vel2, with_jacobians=False):
        vel1 = np.asarray(vel1, dtype=np.float64)
        vel2 = np.asarray(vel2, dtype=np.float64)
        error = np.concatenate([
            local_coordinates(pose1, pose2) - self.delta_t * vel1,
            vel2 - vel1])
        if not with_jacobians:
            return error
        n = dimension(pose1)
        eye = np.eye(n)
        zero = np.zeros((n, n))
        H_pose1 = np.vstack([-eye, zero])
        H_vel1 = np.vstack([-self.delta_t * eye, -eye])
        H_pose2 = np.vstack([eye, zero])
        H_vel2 = np.vstack([zero, eye])
        return error, [H_pose1, H_vel1, H_pose2, H_vel2]

import numpy as np

from skgpmp.factor_graph import NoiseModel
from skgpmp.factor_graph import NoiseModelFactor
from skgpmp.geometry import as_vector


def hinge_loss_limit_cost(values, down_limits, up_limits, thresh):
    """Hinge loss of each element against ``[down + thresh, up - thresh]``.

    Returns
    -------
    error : numpy.ndarray
        per-element loss, zero inside the band.
    jacobian_diag : numpy.ndarray
        derivative of each loss w.r.t. its element (-1, 0 or 1).
    """
    lower = down_limits + thresh
    upper = up_limits - thresh
    error = np.zeros_like(values)
    jacobian_diag = np.zeros_like(values)
    below = values < lower
    above = values > upper
    error[below] = lower[below] - values[below]
    jacobian_diag[below] = -1.0
    error[above] = values[above] - upper[above]
    jacobian_diag[above] = 1.0
    return error, jacobian_diag


class JointLimitFactor(NoiseModelFactor):
    """Keep every element of a pose state inside its limits.

    Use infinite limits for elements without a limit, e.g. the base pose
    of a mobile manipulator.

    Parameters
    ----------
    pose_key : tuple
        key of the pose state.
    cost_sigma : float
        isotropic sigma of the limit cost.
    down_limits, up_limits : numpy.ndarray
        lower and upper limits of the vector form of the pose.
    thresh : float
        margin kept from the limits.
    """

    def __init__(self, pose_key, cost_sigma, down_limits, up_limits,
                 thresh):
        self.down_limits = np.asarray(down_limits, dtype=np.float64)
        self.up_limits = np.asarray(up_limits, dtype=np.float64)
        if self.down_limits.shape != self.up_limits.shape:
            raise ValueError('down_limits and up_limits must match in shape')
        self.thresh = float(thresh)
        noise_model = NoiseModel.isotropic(len(self.down_limits), cost_sigma)
        super(JointLimitFactor, self).__init__((pose_key,), noise_model)

    def evaluate_error(self, pose, with_jacobians=False):
        error, diag = hinge_loss_limit_cost(
            as_vector(pose), self.down_limits, self.up_limits, self.thresh)
        if not with_jacobians:
            return error
        return error, [np.diag(diag)]


class VelocityLimitFactor(NoiseModelFactor):
    """Keep every element of a velocity state inside ``[-limit, limit]``.

    Parameters
    ----------
    vel_key : tuple
        key of the velocity state.
    cost_sigma : float
        isotropic sigma of the limit cost.
    vel_limits : numpy.ndarray
        absolute velocity limits.
    thresh : float
        margin kept from the limits.
    """

    def __init__(self, vel_key, cost_sigma, vel_limits, thresh):
        self.vel_limits = np.abs(np.asarray(vel_limits, dtype=np.float64))
        self.thresh = float(thresh)
        noise_model = NoiseModel.isotropic(len(self.vel_limits), cost_sigma)
        super(VelocityLimitFactor, self).__init__((vel_key,), noise_model)

    def evaluate_error(self, vel, with_jacobians=False):
        error, diag = hinge_loss_limit_cost(
            as_vector(vel), -self.vel_limits, self.vel_limits, self.thresh)
        if not with_jacobians:
            return error
        return error, [np.diag(diag)]

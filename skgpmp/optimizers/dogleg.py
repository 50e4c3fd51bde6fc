from logging import getLogger

import numpy as np

from skgpmp.optimizers.base import DoglegParams
from skgpmp.optimizers.base import NonlinearOptimizer


logger = getLogger(__name__)


def dogleg_step(dx_sd, dx_gn, delta):
    """Powell's dogleg step inside a trust region of radius ``delta``.

    Parameters
    ----------
    dx_sd : numpy.ndarray
        steepest descent (Cauchy) step.
    dx_gn : numpy.ndarray
        Gauss-Newton step.
    delta : float
        trust region radius.

    Returns
    -------
    dx : numpy.ndarray
        step with norm at most ``delta``.

    Examples
    --------
    >>> import numpy as np
    >>> dogleg_step(np.array([1.0, 0.0]), np.array([2.0, 0.0]), 3.0)
    array([2., 0.])
    >>> dogleg_step(np.array([1.0, 0.0]), np.array([2.0, 0.0]), 0.5)
    array([0.5, 0. ])
    """
    gn_norm = np.linalg.norm(dx_gn)
    if gn_norm <= delta:
        return dx_gn
    sd_norm = np.linalg.norm(dx_sd)
    if sd_norm >= delta:
        return (delta / sd_norm) * dx_sd
    # |dx_sd + t (dx_gn - dx_sd)| = delta, 0 <= t <= 1
    diff = dx_gn - dx_sd
    a = diff.dot(diff)
    b = 2.0 * dx_sd.dot(diff)
    c = sd_norm ** 2 - delta ** 2
    t = (-b + np.sqrt(b ** 2 - 4.0 * a * c)) / (2.0 * a)
    return dx_sd + t * diff


class DoglegOptimizer(NonlinearOptimizer):
    """Powell's dogleg trust region method.

    The step blends the steepest descent and Gauss-Newton steps inside a
    trust region whose radius adapts to the ratio between the actual and
    the predicted error decrease. Steps that increase the error are never
    accepted.
    """

    params_class = DoglegParams

    def __init__(self, graph, initial_values, params=None):
        super(DoglegOptimizer, self).__init__(graph, initial_values, params)
        self.delta = self.params.delta_initial

    def iterate(self):
        params = self.params
        jacobian, residual = self._linearize()
        hessian = jacobian.T.dot(jacobian)
        gradient = jacobian.T.dot(residual)

        jg = jacobian.dot(gradient)
        jg_sq = jg.dot(jg)
        if jg_sq > 0:
            dx_sd = -(gradient.dot(gradient) / jg_sq) * gradient
        else:
            dx_sd = np.zeros_like(gradient)
        dx_gn = self._solve(hessian, -gradient)

        while True:
            dx = dogleg_step(dx_sd, dx_gn, self.delta)
            step_norm = np.linalg.norm(dx)
            new_values, new_error = self._evaluate_step(dx)
            linear_residual = residual + jacobian.dot(dx)
            predicted = self._error - linear_residual.dot(linear_residual)
            actual = self._error - new_error
            if predicted > 0:
                rho = actual / predicted
            else:
                rho = 0.0

            if rho >= 0.75:
                self.delta = max(self.delta, 3.0 * step_norm)
            elif rho < 0.25:
                self.delta = 0.5 * self.delta

            if np.isfinite(new_error) and actual >= 0:
                self._values = new_values
                self._error = new_error
                break
            if self.delta < params.delta_min:
                if params.verbosity != 'silent':
                    logger.warning(
                        'Dogleg giving up because the trust region radius '
                        '%g is too small', self.delta)
                break
            logger.debug('Step rejected, trust region radius %g',
                         self.delta)
        self._iterations += 1

from logging import getLogger

import numpy as np
import scipy.sparse

from skgpmp.exceptions import OptimizationFailure
from skgpmp.optimizers.base import LevenbergMarquardtParams
from skgpmp.optimizers.base import NonlinearOptimizer


logger = getLogger(__name__)


class LevenbergMarquardtOptimizer(NonlinearOptimizer):
    """Levenberg-Marquardt with multiplicative damping updates.

    Each iteration solves ``(J^T J + lambda I) dx = -J^T r``. A step that
    does not increase the error is accepted and lambda is divided by
    ``lambda_factor``; otherwise lambda is multiplied and the step is
    recomputed. Once lambda exceeds ``lambda_upper_bound`` the iteration
    gives up and keeps the current values, so the error never increases.
    """

    params_class = LevenbergMarquardtParams

    def __init__(self, graph, initial_values, params=None):
        super(LevenbergMarquardtOptimizer, self).__init__(
            graph, initial_values, params)
        self.lambda_ = self.params.lambda_initial

    def iterate(self):
        params = self.params
        jacobian, residual = self._linearize()
        hessian = jacobian.T.dot(jacobian)
        gradient = jacobian.T.dot(residual)
        identity = scipy.sparse.identity(hessian.shape[0], format='csc')

        while True:
            try:
                dx = self._solve(hessian + self.lambda_ * identity, -gradient)
            except OptimizationFailure:
                new_error = np.inf
            else:
                new_values, new_error = self._evaluate_step(dx)

            if np.isfinite(new_error) and new_error <= self._error:
                self._values = new_values
                self._error = new_error
                self.lambda_ = max(self.lambda_ / params.lambda_factor,
                                   params.lambda_lower_bound)
                break

            if self.lambda_ >= params.lambda_upper_bound:
                if params.verbosity != 'silent':
                    logger.warning(
                        'Levenberg-Marquardt giving up because the error '
                        'cannot be decreased with maximum lambda %g',
                        self.lambda_)
                break
            self.lambda_ = self.lambda_ * params.lambda_factor
            logger.debug('Step rejected, lambda increased to %g',
                         self.lambda_)
        self._iterations += 1

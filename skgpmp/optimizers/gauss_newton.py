from skgpmp.optimizers.base import NonlinearOptimizer
from skgpmp.optimizers.base import NonlinearOptimizerParams


class GaussNewtonOptimizer(NonlinearOptimizer):
    """Plain Gauss-Newton iterations.

    Every step solves ``J^T J dx = -J^T r`` and is accepted even if the
    error increases. Use ``final_iter_no_increase`` to discard an
    increasing last step.
    """

    params_class = NonlinearOptimizerParams

    def iterate(self):
        jacobian, residual = self._linearize()
        hessian = jacobian.T.dot(jacobian)
        gradient = jacobian.T.dot(residual)
        dx = self._solve(hessian, -gradient)
        self._values, self._error = self._evaluate_step(dx)
        self._iterations += 1

"""Base nonlinear least-squares optimizer over a factor graph."""

from abc import ABC
from abc import abstractmethod
from logging import getLogger
import warnings

import numpy as np
import scipy.sparse
import scipy.sparse.linalg

from skgpmp.exceptions import OptimizationFailure
from skgpmp.factor_graph import Ordering


logger = getLogger(__name__)

VERBOSITY_LEVELS = ('silent', 'error', 'values')


class NonlinearOptimizerParams(object):
    """Parameters shared by all nonlinear optimizers.

    Parameters
    ----------
    max_iterations : int
        maximum number of iterations.
    relative_error_tol : float
        stop when the relative error decrease falls below this value.
    absolute_error_tol : float
        stop when the absolute error decrease falls below this value.
    error_tol : float
        stop when the error itself falls below this value.
    verbosity : str
        'silent', 'error' or 'values'.
    final_iter_no_increase : bool
        if True and the last iteration increased the error, the previous
        iterate is returned.
    raise_on_max_iterations : bool
        if True, reaching ``max_iterations`` without convergence raises
        :class:`skgpmp.exceptions.OptimizationFailure`. Otherwise the last
        values are returned and a warning is logged.
    """

    def __init__(self,
                 max_iterations=100,
                 relative_error_tol=1e-5,
                 absolute_error_tol=1e-5,
                 error_tol=0.0,
                 verbosity='silent',
                 final_iter_no_increase=False,
                 raise_on_max_iterations=True):
        if max_iterations <= 0:
            raise ValueError('max_iterations must be positive')
        if verbosity not in VERBOSITY_LEVELS:
            raise ValueError(
                'verbosity must be one of {}, but got {}'.format(
                    VERBOSITY_LEVELS, verbosity))
        self.max_iterations = int(max_iterations)
        self.relative_error_tol = float(relative_error_tol)
        self.absolute_error_tol = float(absolute_error_tol)
        self.error_tol = float(error_tol)
        self.verbosity = verbosity
        self.final_iter_no_increase = bool(final_iter_no_increase)
        self.raise_on_max_iterations = bool(raise_on_max_iterations)


class LevenbergMarquardtParams(NonlinearOptimizerParams):
    """Parameters of :class:`LevenbergMarquardtOptimizer`.

    Parameters
    ----------
    lambda_initial : float
        initial damping.
    lambda_factor : float
        damping multiplier applied on rejected steps and divisor applied
        on accepted steps.
    lambda_upper_bound : float
        the iteration gives up once the damping exceeds this value.
    lambda_lower_bound : float
        lower bound of the damping.
    **kwargs
        see :class:`NonlinearOptimizerParams`.
    """

    def __init__(self,
                 lambda_initial=1e-5,
                 lambda_factor=10.0,
                 lambda_upper_bound=1e5,
                 lambda_lower_bound=0.0,
                 **kwargs):
        super(LevenbergMarquardtParams, self).__init__(**kwargs)
        if lambda_factor <= 1.0:
            raise ValueError('lambda_factor must be greater than 1')
        self.lambda_initial = float(lambda_initial)
        self.lambda_factor = float(lambda_factor)
        self.lambda_upper_bound = float(lambda_upper_bound)
        self.lambda_lower_bound = float(lambda_lower_bound)


class DoglegParams(NonlinearOptimizerParams):
    """Parameters of :class:`DoglegOptimizer`.

    Parameters
    ----------
    delta_initial : float
        initial trust region radius.
    delta_min : float
        the iteration gives up once the radius falls below this value.
    **kwargs
        see :class:`NonlinearOptimizerParams`.
    """

    def __init__(self, delta_initial=1.0, delta_min=1e-10, **kwargs):
        super(DoglegParams, self).__init__(**kwargs)
        if delta_initial <= 0:
            raise ValueError('delta_initial must be positive')
        self.delta_initial = float(delta_initial)
        self.delta_min = float(delta_min)


def check_convergence(relative_error_tol, absolute_error_tol, error_tol,
                      current_error, new_error, verbosity='silent'):
    """Decide whether an optimizer has converged.

    Parameters
    ----------
    relative_error_tol : float
        relative decrease threshold.
    absolute_error_tol : float
        absolute decrease threshold.
    error_tol : float
        threshold on the error itself.
    current_error : float
        error before the last iteration.
    new_error : float
        error after the last iteration.
    verbosity : str
        'silent', 'error' or 'values'.

    Returns
    -------
    converged : bool
        True if any of the thresholds is reached.

    Examples
    --------
    >>> check_convergence(1e-2, 1e-5, 0.0, 10.0, 9.99)
    True
    >>> check_convergence(1e-2, 1e-5, 0.0, 10.0, 5.0)
    False
    """
    if new_error <= error_tol:
        return True
    absolute_decrease = current_error - new_error
    if current_error > 0:
        relative_decrease = absolute_decrease / current_error
    else:
        relative_decrease = 0.0
    if absolute_decrease < 0 and verbosity != 'silent':
        logger.warning(
            'Error increased from %g to %g', current_error, new_error)
    return (relative_decrease <= relative_error_tol
            or absolute_decrease <= absolute_error_tol)


class NonlinearOptimizer(ABC):
    """Base class of iterative nonlinear least-squares optimizers.

    The objective is ``graph.error(values)``, the sum of squared whitened
    residuals. Subclasses implement :meth:`iterate`, a single step that
    updates :attr:`values` and :attr:`error`. The input values are never
    modified.

    Parameters
    ----------
    graph : skgpmp.factor_graph.FactorGraph
        factor graph to minimize.
    initial_values : skgpmp.values.Values
        initial estimate. Every key used by ``graph`` must be present.
    params : NonlinearOptimizerParams or None
        optimizer parameters. Defaults are used if None.
    """

    params_class = NonlinearOptimizerParams

    def __init__(self, graph, initial_values, params=None):
        if params is None:
            params = self.params_class()
        missing = [key for key in graph.keys()
                   if not initial_values.exists(key)]
        if missing:
            raise KeyError('initial values are missing keys {}'.format(
                sorted(missing)))
        self.graph = graph
        self.params = params
        self.ordering = Ordering.from_values(initial_values)
        self._values = initial_values.copy()
        self._error = self.graph.error(self._values)
        self._iterations = 0
        if not np.isfinite(self._error):
            raise OptimizationFailure(
                'initial error is not finite', values=None,
                error=self._error, iterations=0)

    @property
    def values(self):
        return self._values

    @property
    def error(self):
        return self._error

    @property
    def iterations(self):
        return self._iterations

    @abstractmethod
    def iterate(self):
        """Perform a single iteration.

        Updates :attr:`values`, :attr:`error` and :attr:`iterations`.

        Raises
        ------
        skgpmp.exceptions.OptimizationFailure
            if the linear system is singular or the error is not finite.
        """
        pass

    def _linearize(self):
        return self.graph.linearize(self._values, self.ordering)

    def _solve(self, hessian, rhs):
        """Solve ``hessian dx = rhs`` with a sparse direct solver."""
        hessian = scipy.sparse.csc_matrix(hessian)
        with warnings.catch_warnings():
            warnings.simplefilter(
                'error', scipy.sparse.linalg.MatrixRankWarning)
            try:
                dx = scipy.sparse.linalg.spsolve(hessian, rhs)
            except (scipy.sparse.linalg.MatrixRankWarning, RuntimeError) as e:
                raise OptimizationFailure(
                    'linear system is singular: {}'.format(e),
                    values=self._values, error=self._error,
                    iterations=self._iterations)
        dx = np.atleast_1d(dx)
        if not np.all(np.isfinite(dx)):
            raise OptimizationFailure(
                'linear system solution is not finite',
                values=self._values, error=self._error,
                iterations=self._iterations)
        return dx

    def _evaluate_step(self, dx):
        new_values = self._values.retract(dx, self.ordering)
        return new_values, self.graph.error(new_values)

    def _log(self, message, *args):
        if self.params.verbosity == 'silent':
            logger.debug(message, *args)
        else:
            logger.info(message, *args)

    def optimize(self):
        """Iterate until convergence or ``max_iterations``.

        Returns
        -------
        values : skgpmp.values.Values
            optimized values.

        Raises
        ------
        skgpmp.exceptions.OptimizationFailure
            on a singular linear system, a non-finite error or, with
            ``raise_on_max_iterations``, when the iteration cap is
            reached without convergence.
        """
        params = self.params
        self._log('Initial error: %g', self._error)
        if params.verbosity == 'values':
            logger.info('Initial values:\n%s', self._values)
        if self._error <= params.error_tol:
            return self._values

        converged = False
        previous_values = self._values
        previous_error = self._error
        while self._iterations < params.max_iterations:
            previous_values = self._values
            previous_error = self._error
            self.iterate()
            if not np.isfinite(self._error):
                raise OptimizationFailure(
                    'error is not finite after iteration {}'.format(
                        self._iterations),
                    values=previous_values, error=previous_error,
                    iterations=self._iterations)
            self._log('Iteration %d error: %g', self._iterations, self._error)
            if params.verbosity == 'values':
                logger.info('Values:\n%s', self._values)
            converged = check_convergence(
                params.relative_error_tol, params.absolute_error_tol,
                params.error_tol, previous_error, self._error,
                params.verbosity)
            if converged:
                break

        if not converged:
            if params.raise_on_max_iterations:
                raise OptimizationFailure(
                    'did not converge within {} iterations'.format(
                        params.max_iterations),
                    values=self._values, error=self._error,
                    iterations=self._iterations)
            logger.warning(
                'Maximum number of iterations %d reached without '
                'convergence, error %g', params.max_iterations, self._error)

        if params.final_iter_no_increase and self._error > previous_error:
            self._log('Last iteration increased the error, '
                      'returning the previous values')
            self._values = previous_values
            self._error = previous_error
        self._log('Final error: %g after %d iterations',
                  self._error, self._iterations)
        return self._values

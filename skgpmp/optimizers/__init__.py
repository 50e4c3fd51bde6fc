"""Nonlinear least-squares optimizers.

Available optimizers:
- 'gauss_newton': Gauss-Newton, fastest per iteration but not monotonic
- 'levenberg_marquardt': damped Gauss-Newton, monotonic
- 'dogleg': Powell's dogleg trust region, monotonic
"""

from skgpmp.optimizers.base import check_convergence
from skgpmp.optimizers.base import DoglegParams
from skgpmp.optimizers.base import LevenbergMarquardtParams
from skgpmp.optimizers.base import NonlinearOptimizer
from skgpmp.optimizers.base import NonlinearOptimizerParams
from skgpmp.optimizers.dogleg import DoglegOptimizer
from skgpmp.optimizers.gauss_newton import GaussNewtonOptimizer
from skgpmp.optimizers.levenberg_marquardt import LevenbergMarquardtOptimizer


_OPTIMIZERS = {
    'gauss_newton': GaussNewtonOptimizer,
    'levenberg_marquardt': LevenbergMarquardtOptimizer,
    'dogleg': DoglegOptimizer,
}


def optimizer_class(optimizer_type):
    """Return the optimizer class registered as ``optimizer_type``."""
    try:
        return _OPTIMIZERS[optimizer_type]
    except KeyError:
        raise ValueError(
            'Unknown optimizer type: {}. Available: {}'.format(
                optimizer_type, sorted(_OPTIMIZERS)))


def create_optimizer(optimizer_type, graph, initial_values, params=None):
    """Create a nonlinear optimizer.

    Parameters
    ----------
    optimizer_type : str
        'gauss_newton', 'levenberg_marquardt' or 'dogleg'.
    graph : skgpmp.factor_graph.FactorGraph
        factor graph to minimize.
    initial_values : skgpmp.values.Values
        initial estimate.
    params : NonlinearOptimizerParams or None
        optimizer parameters.

    Returns
    -------
    NonlinearOptimizer
        optimizer instance.
    """
    return optimizer_class(optimizer_type)(graph, initial_values, params)


def optimize(graph, initial_values, params=None):
    """Minimize ``graph`` from ``initial_values``.

    The optimizer is chosen from the type of ``params``:
    :class:`LevenbergMarquardtParams` selects Levenberg-Marquardt,
    :class:`DoglegParams` selects Dogleg and anything else Gauss-Newton.

    Returns
    -------
    values : skgpmp.values.Values
        optimized values.
    error : float
        final objective.
    """
    if isinstance(params, LevenbergMarquardtParams):
        optimizer_type = 'levenberg_marquardt'
    elif isinstance(params, DoglegParams):
        optimizer_type = 'dogleg'
    else:
        optimizer_type = 'gauss_newton'
    optimizer = create_optimizer(optimizer_type, graph, initial_values, params)
    values = optimizer.optimize()
    return values, optimizer.error


__all__ = [
    'check_convergence',
    'create_optimizer',
    'DoglegOptimizer',
    'DoglegParams',
    'GaussNewtonOptimizer',
    'LevenbergMarquardtOptimizer',
    'LevenbergMarquardtParams',
    'NonlinearOptimizer',
    'NonlinearOptimizerParams',
    'optimize',
    'optimizer_class',
]

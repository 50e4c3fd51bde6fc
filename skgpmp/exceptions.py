"""Exceptions raised by trajectory optimization."""


class InvalidSettingError(ValueError):
    """Malformed optimization setting or mismatched state dimensions.

    Raised before any factor is built, so nothing partially constructed
    escapes to the caller.
    """


class OptimizationFailure(RuntimeError):
    """The nonlinear optimizer could not produce a valid result.

    Parameters
    ----------
    message : str
        Reason of the failure.
    values : skgpmp.values.Values or None
        Last valid iterate known to the optimizer, if any.
    error : float or None
        Objective value at ``values``.
    iterations : int
        Number of iterations performed before the failure.
    """

    def __init__(self, message, values=None, error=None, iterations=0):
        super(OptimizationFailure, self).__init__(message)
        self.values = values
        self.error = error
        self.iterations = iterations

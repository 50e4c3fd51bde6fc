from dataclasses import dataclass
from dataclasses import replace as _dataclass_replace
from typing import Optional

import numpy as np

from skgpmp.exceptions import InvalidSettingError


HARD_CONSTRAINT_SIGMA = 1e-6

OPTIMIZER_TYPES = ('gauss_newton', 'levenberg_marquardt', 'dogleg')
VERBOSITY_LEVELS = ('silent', 'error', 'values')


def _optional_array(value, dof, name):
    if value is None:
        return None
    arr = np.array(value, dtype=np.float64).reshape(-1)
    if arr.size == 1 and dof > 1:
        arr = np.full(dof, arr[0])
    if arr.shape != (dof,):
        raise InvalidSettingError(
            '{} must have {} elements, but got {}'.format(
                name, dof, arr.size))
    return arr


@dataclass(frozen=True, eq=False)
class TrajOptimizerSetting:
    """Immutable configuration of batch trajectory optimization.

    Validated on construction; use :meth:`replace` to derive a modified
    copy.

    Parameters
    ----------
    dof : int
        dimension of the pose (and velocity) state.
    total_step : int
        number of intervals, the trajectory has ``total_step + 1`` support
        states.
    total_time : float
        duration of the trajectory in seconds.
    qc : numpy.ndarray or float or None
        (dof, dof) GP power spectral density. A scalar ``s`` means
        ``s * I``, None means identity.
    fixed_sigma : float
        sigma of the start and end priors. 0 is replaced by
        ``HARD_CONSTRAINT_SIGMA``.
    obstacle_sigma : float
        sigma of the obstacle cost.
    safety_margin : float
        distance to keep from obstacles.
    obs_check_interp : int
        number of interpolated obstacle checks between support states.
    optimizer : str
        'gauss_newton', 'levenberg_marquardt' or 'dogleg'.
    max_iterations : int
        maximum number of optimizer iterations.
    relative_error_tol : float
        relative error decrease threshold.
    absolute_error_tol : float
        absolute error decrease threshold.
    verbosity : str
        'silent', 'error' or 'values'.
    final_iter_no_increase : bool
        return the previous iterate if the last one increased the error.
    raise_on_max_iterations : bool
        raise ``OptimizationFailure`` when ``max_iterations`` is reached.
    flag_pos_limit : bool
        add joint limit factors.
    joint_pos_limits_down, joint_pos_limits_up : numpy.ndarray or None
        limits of the vector form of the pose. Use ``-inf`` / ``inf``
        for unlimited elements.
    pos_limit_thresh : float
        margin kept from the joint limits.
    pos_limit_sigma : float
        sigma of the joint limit cost.
    flag_vel_limit : bool
        add velocity limit factors.
    vel_limits : numpy.ndarray or None
        absolute velocity limits.
    vel_limit_thresh : float
        margin kept from the velocity limits.
    vel_limit_sigma : float
        sigma of the velocity limit cost.
    """

    dof: int
    total_step: int
    total_time: float
    qc: Optional[np.ndarray] = None
    fixed_sigma: float = 1e-4
    obstacle_sigma: float = 0.1
    safety_margin: float = 0.2
    obs_check_interp: int = 0
    optimizer: str = 'dogleg'
    max_iterations: int = 100
    relative_error_tol: float = 1e-2
    absolute_error_tol: float = 1e-5
    verbosity: str = 'silent'
    final_iter_no_increase: bool = False
    raise_on_max_iterations: bool = True
    flag_pos_limit: bool = False
    joint_pos_limits_down: Optional[np.ndarray] = None
    joint_pos_limits_up: Optional[np.ndarray] = None
    pos_limit_thresh: float = 0.0
    pos_limit_sigma: float = 1e-3
    flag_vel_limit: bool = False
    vel_limits: Optional[np.ndarray] = None
    vel_limit_thresh: float = 0.0
    vel_limit_sigma: float = 1e-3

    def __post_init__(self):
        if int(self.dof) != self.dof or self.dof <= 0:
            raise InvalidSettingError(
                'dof must be a positive integer, but got {}'.format(self.dof))
        if int(self.total_step) != self.total_step or self.total_step < 1:
            raise InvalidSettingError(
                'total_step must be a positive integer, but got {}'.format(
                    self.total_step))
        if not self.total_time > 0:
            raise InvalidSettingError(
                'total_time must be positive, but got {}'.format(
                    self.total_time))
        object.__setattr__(self, 'dof', int(self.dof))
        object.__setattr__(self, 'total_step', int(self.total_step))
        object.__setattr__(self, 'total_time', float(self.total_time))

        if self.qc is None:
            qc = np.eye(self.dof)
        elif np.ndim(self.qc) == 0:
            qc = float(self.qc) * np.eye(self.dof)
        else:
            qc = np.array(self.qc, dtype=np.float64)
        if qc.shape != (self.dof, self.dof):
            raise InvalidSettingError(
                'qc must be ({0}, {0}), but got {1}'.format(
                    self.dof, qc.shape))
        if not np.allclose(qc, qc.T):
            raise InvalidSettingError('qc must be symmetric')
        try:
            np.linalg.cholesky(qc)
        except np.linalg.LinAlgError:
            raise InvalidSettingError('qc must be positive definite')
        object.__setattr__(self, 'qc', qc)

        if self.fixed_sigma < 0:
            raise InvalidSettingError('fixed_sigma must be non-negative')
        if not self.obstacle_sigma > 0:
            raise InvalidSettingError('obstacle_sigma must be positive')
        if self.safety_margin < 0:
            raise InvalidSettingError('safety_margin must be non-negative')
        if (int(self.obs_check_interp) != self.obs_check_interp
                or self.obs_check_interp < 0):
            raise InvalidSettingError(
                'obs_check_interp must be a non-negative integer')
        object.__setattr__(
            self, 'obs_check_interp', int(self.obs_check_interp))
        if self.optimizer not in OPTIMIZER_TYPES:
            raise InvalidSettingError(
                'optimizer must be one of {}, but got {}'.format(
                    OPTIMIZER_TYPES, self.optimizer))
        if self.max_iterations <= 0:
            raise InvalidSettingError('max_iterations must be positive')
        if self.relative_error_tol < 0 or self.absolute_error_tol < 0:
            raise InvalidSettingError('error tolerances must be non-negative')
        if self.verbosity not in VERBOSITY_LEVELS:
            raise InvalidSettingError(
                'verbosity must be one of {}, but got {}'.format(
                    VERBOSITY_LEVELS, self.verbosity))

        down = _optional_array(
            self.joint_pos_limits_down, self.dof, 'joint_pos_limits_down')
        up = _optional_array(
            self.joint_pos_limits_up, self.dof, 'joint_pos_limits_up')
        vel_limits = _optional_array(self.vel_limits, self.dof, 'vel_limits')
        if self.flag_pos_limit:
            if down is None or up is None:
                raise InvalidSettingError(
                    'flag_pos_limit requires joint_pos_limits_down and '
                    'joint_pos_limits_up')
            if np.any(down > up):
                raise InvalidSettingError(
                    'joint_pos_limits_down must not exceed '
                    'joint_pos_limits_up')
            if not self.pos_limit_sigma > 0:
                raise InvalidSettingError('pos_limit_sigma must be positive')
        if self.flag_vel_limit:
            if vel_limits is None:
                raise InvalidSettingError('flag_vel_limit requires vel_limits')
            if not self.vel_limit_sigma > 0:
                raise InvalidSettingError('vel_limit_sigma must be positive')
        object.__setattr__(self, 'joint_pos_limits_down', down)
        object.__setattr__(self, 'joint_pos_limits_up', up)
        object.__setattr__(self, 'vel_limits', vel_limits)

    @property
    def delta_t(self):
        """Time between consecutive support states."""
        return self.total_time / self.total_step

    @property
    def prior_sigma(self):
        """Sigma actually used by the start and end priors."""
        if self.fixed_sigma == 0:
            return HARD_CONSTRAINT_SIGMA
        return self.fixed_sigma

    def replace(self, **changes):
        """Return a validated copy with ``changes`` applied.

        Examples
        --------
        >>> setting = TrajOptimizerSetting(dof=2, total_step=10,
        ...                                total_time=1.0)
        >>> setting.replace(obs_check_interp=3).obs_check_interp
        3
        """
        return _dataclass_replace(self, **changes)

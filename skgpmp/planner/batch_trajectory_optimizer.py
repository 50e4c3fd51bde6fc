"""Batch GP trajectory optimization.

The trajectory is a sequence of support states (pose and velocity at
evenly spaced times). A factor graph couples them with

- priors fixing the start and end states,
- optional joint and velocity limit costs,
- an obstacle cost at every support pose,
- obstacle costs at GP-interpolated poses between support states,
- a constant-velocity GP prior between consecutive support states,

and a nonlinear least-squares optimizer minimizes the total cost.
"""

from logging import getLogger

import numpy as np

from skgpmp.exceptions import InvalidSettingError
from skgpmp.factor_graph import FactorGraph
from skgpmp.factor_graph import NoiseModel
from skgpmp.factors import GPInterpolatedObstacleCostFactor
from skgpmp.factors import JointLimitFactor
from skgpmp.factors import ObstacleCostFactor
from skgpmp.factors import PriorFactor
from skgpmp.factors import VelocityLimitFactor
from skgpmp.geometry import dimension
from skgpmp.geometry import Pose2Vector
from skgpmp.gp import GaussianProcessPriorFactor
from skgpmp.kinematics import ArmModel
from skgpmp.kinematics import Pose2MobileArmModel
from skgpmp.optimizers import create_optimizer
from skgpmp.optimizers import DoglegParams
from skgpmp.optimizers import LevenbergMarquardtParams
from skgpmp.optimizers import NonlinearOptimizerParams
from skgpmp.planner.setting import TrajOptimizerSetting
from skgpmp.values import pose_key
from skgpmp.values import velocity_key


logger = getLogger(__name__)


def _check_dimension(value, dof, name):
    if dimension(value) != dof:
        raise InvalidSettingError(
            '{} must have dimension {}, but got {}'.format(
                name, dof, dimension(value)))


def _check_pose_type(value, pose_is_pose2, name):
    if isinstance(value, Pose2Vector) != pose_is_pose2:
        raise InvalidSettingError(
            '{} must be {}'.format(
                name, 'a Pose2Vector' if pose_is_pose2 else 'a vector'))


def validate_problem(robot, sdf, start_conf, start_vel, end_conf, end_vel,
                     init_values, setting):
    """Check a trajectory optimization problem before building factors.

    Raises
    ------
    skgpmp.exceptions.InvalidSettingError
        if the setting, the robot, the SDF, the boundary conditions and the
        initial values are inconsistent.
    """
    if not isinstance(setting, TrajOptimizerSetting):
        raise InvalidSettingError(
            'setting must be TrajOptimizerSetting, but got {}'.format(
                type(setting)))
    if robot.dof != setting.dof:
        raise InvalidSettingError(
            'robot dof {} does not match setting dof {}'.format(
                robot.dof, setting.dof))
    if sdf.dim not in (2, 3):
        raise InvalidSettingError(
            'sdf dimension must be 2 or 3, but got {}'.format(sdf.dim))
    dof = setting.dof
    _check_dimension(start_conf, dof, 'start_conf')
    _check_dimension(start_vel, dof, 'start_vel')
    _check_dimension(end_conf, dof, 'end_conf')
    _check_dimension(end_vel, dof, 'end_vel')
    pose_is_pose2 = isinstance(start_conf, Pose2Vector)
    _check_pose_type(end_conf, pose_is_pose2, 'end_conf')
    if init_values is None:
        return
    for i in range(setting.total_step + 1):
        for key in (pose_key(i), velocity_key(i)):
            if not init_values.exists(key):
                raise InvalidSettingError(
                    'init_values is missing {}{}'.format(key[0], key[1]))
            _check_dimension(init_values.at(key), dof,
                             'init_values {}{}'.format(key[0], key[1]))
        _check_pose_type(init_values.at(pose_key(i)), pose_is_pose2,
                         'init_values x{}'.format(i))


def build_trajectory_graph(robot, sdf, start_conf, start_vel, end_conf,
                           end_vel, setting,
                           gp_prior_factor=GaussianProcessPriorFactor,
                           obstacle_factor=ObstacleCostFactor,
                           obstacle_gp_factor=GPInterpolatedObstacleCostFactor):
    """Build the factor graph of a batch trajectory optimization problem.

    Factors are added in time order. For each support index ``i``: start
    or end priors, limit factors, the support state obstacle factor and,
    for ``i >= 1``, the interpolated obstacle factors followed by the GP
    prior between ``i - 1`` and ``i``.

    Parameters
    ----------
    robot : skgpmp.kinematics.RobotModel
        robot body model.
    sdf : skgpmp.sdf.SignedDistanceFunction
        obstacle field.
    start_conf, end_conf : numpy.ndarray or Pose2Vector
        start and end poses.
    start_vel, end_vel : numpy.ndarray
        start and end velocities.
    setting : TrajOptimizerSetting
        problem setting.
    gp_prior_factor : callable
        ``(pose_key1, vel_key1, pose_key2, vel_key2, delta_t, qc)`` ->
        factor.
    obstacle_factor : callable
        ``(pose_key, robot, sdf, cost_sigma, epsilon)`` -> factor.
    obstacle_gp_factor : callable
        ``(pose_key1, vel_key1, pose_key2, vel_key2, robot, sdf,
        cost_sigma, epsilon, delta_t, tau)`` -> factor.

    Returns
    -------
    graph : skgpmp.factor_graph.FactorGraph
        assembled factor graph.
    """
    validate_problem(robot, sdf, start_conf, start_vel, end_conf, end_vel,
                     None, setting)
    dof = setting.dof
    delta_t = setting.delta_t
    inter_dt = delta_t / (setting.obs_check_interp + 1)
    prior_noise = NoiseModel.isotropic(dof, setting.prior_sigma)

    graph = FactorGraph()
    for i in range(setting.total_step + 1):
        pose = pose_key(i)
        vel = velocity_key(i)

        if i == 0:
            graph.add(PriorFactor(pose, start_conf, prior_noise))
            graph.add(PriorFactor(vel, np.asarray(start_vel, dtype=np.float64),
                                  prior_noise))
        elif i == setting.total_step:
            graph.add(PriorFactor(pose, end_conf, prior_noise))
            graph.add(PriorFactor(vel, np.asarray(end_vel, dtype=np.float64),
                                  prior_noise))

        if setting.flag_pos_limit:
            graph.add(JointLimitFactor(
                pose, setting.pos_limit_sigma,
                setting.joint_pos_limits_down, setting.joint_pos_limits_up,
                setting.pos_limit_thresh))
        if setting.flag_vel_limit:
            graph.add(VelocityLimitFactor(
                vel, setting.vel_limit_sigma, setting.vel_limits,
                setting.vel_limit_thresh))

        graph.add(obstacle_factor(
            pose, robot, sdf, setting.obstacle_sigma, setting.safety_margin))

        if i > 0:
            last_pose = pose_key(i - 1)
            last_vel = velocity_key(i - 1)
            for j in range(1, setting.obs_check_interp + 1):
                tau = j * inter_dt
                graph.add(obstacle_gp_factor(
                    last_pose, last_vel, pose, vel, robot, sdf,
                    setting.obstacle_sigma, setting.safety_margin,
                    delta_t, tau))
            graph.add(gp_prior_factor(
                last_pose, last_vel, pose, vel, delta_t, setting.qc))

    logger.debug('Built trajectory graph with %d factors and %d residuals',
                 len(graph), graph.residual_dim())
    return graph


def optimizer_params(setting, iter_no_increase=None):
    """Convert a setting into optimizer parameters.

    Parameters
    ----------
    setting : TrajOptimizerSetting
        problem setting.
    iter_no_increase : bool or None
        overrides ``setting.final_iter_no_increase`` if not None.

    Returns
    -------
    params : skgpmp.optimizers.NonlinearOptimizerParams
        parameters of the optimizer selected by ``setting.optimizer``.
    """
    if iter_no_increase is None:
        iter_no_increase = setting.final_iter_no_increase
    kwargs = dict(
        max_iterations=setting.max_iterations,
        relative_error_tol=setting.relative_error_tol,
        absolute_error_tol=setting.absolute_error_tol,
        verbosity=setting.verbosity,
        final_iter_no_increase=iter_no_increase,
        raise_on_max_iterations=setting.raise_on_max_iterations)
    if setting.optimizer == 'levenberg_marquardt':
        return LevenbergMarquardtParams(**kwargs)
    elif setting.optimizer == 'dogleg':
        return DoglegParams(**kwargs)
    return NonlinearOptimizerParams(**kwargs)


def optimize(graph, init_values, setting, iter_no_increase=None):
    """Optimize a factor graph with the optimizer selected by ``setting``.

    Parameters
    ----------
    graph : skgpmp.factor_graph.FactorGraph
        factor graph to minimize.
    init_values : skgpmp.values.Values
        initial estimate. Not modified.
    setting : TrajOptimizerSetting
        problem setting.
    iter_no_increase : bool or None
        overrides ``setting.final_iter_no_increase`` if not None.

    Returns
    -------
    values : skgpmp.values.Values
        optimized values.
    """
    params = optimizer_params(setting, iter_no_increase)
    optimizer = create_optimizer(setting.optimizer, graph, init_values, params)
    values = optimizer.optimize()
    logger.debug('%s finished after %d iterations with error %g',
                 setting.optimizer, optimizer.iterations, optimizer.error)
    return values


def batch_trajectory_optimize(
        robot, sdf, start_conf, start_vel, end_conf, end_vel, init_values,
        setting,
        gp_prior_factor=GaussianProcessPriorFactor,
        obstacle_factor=ObstacleCostFactor,
        obstacle_gp_factor=GPInterpolatedObstacleCostFactor):
    """Optimize a trajectory from start to end avoiding obstacles.

    Parameters
    ----------
    robot : skgpmp.kinematics.RobotModel
        robot body model.
    sdf : skgpmp.sdf.SignedDistanceFunction
        obstacle field.
    start_conf, end_conf : numpy.ndarray or Pose2Vector
        start and end poses.
    start_vel, end_vel : numpy.ndarray
        start and end velocities.
    init_values : skgpmp.values.Values
        initial trajectory with a pose and a velocity for every index
        ``0..setting.total_step``. Not modified.
    setting : TrajOptimizerSetting
        problem setting.
    gp_prior_factor, obstacle_factor, obstacle_gp_factor : callable
        factor constructors, see :func:`build_trajectory_graph`.

    Returns
    -------
    values : skgpmp.values.Values
        optimized trajectory.

    Raises
    ------
    skgpmp.exceptions.InvalidSettingError
        if the inputs are inconsistent. Raised before building any factor.
    skgpmp.exceptions.OptimizationFailure
        if the optimizer fails.
    """
    validate_problem(robot, sdf, start_conf, start_vel, end_conf, end_vel,
                     init_values, setting)
    graph = build_trajectory_graph(
        robot, sdf, start_conf, start_vel, end_conf, end_vel, setting,
        gp_prior_factor=gp_prior_factor,
        obstacle_factor=obstacle_factor,
        obstacle_gp_factor=obstacle_gp_factor)
    return optimize(graph, init_values, setting)


def collision_cost(robot, sdf, values, setting,
                   obstacle_factor=ObstacleCostFactor):
    """Obstacle cost of the support state poses of a trajectory.

    Only support states are checked, without GP interpolation.

    Parameters
    ----------
    robot : skgpmp.kinematics.RobotModel
        robot body model.
    sdf : skgpmp.sdf.SignedDistanceFunction
        obstacle field.
    values : skgpmp.values.Values
        trajectory holding the poses of indices ``0..setting.total_step``.
    setting : TrajOptimizerSetting
        problem setting.
    obstacle_factor : callable
        ``(pose_key, robot, sdf, cost_sigma, epsilon)`` -> factor.

    Returns
    -------
    cost : float
        sum of squared whitened obstacle costs, 0 if every sphere keeps the
        safety margin.

    Raises
    ------
    skgpmp.exceptions.InvalidSettingError
        if the robot dof does not match the setting or a pose is missing
        or has the wrong dimension.
    """
    if robot.dof != setting.dof:
        raise InvalidSettingError(
            'robot dof {} does not match setting dof {}'.format(
                robot.dof, setting.dof))
    graph = FactorGraph()
    for i in range(setting.total_step + 1):
        key = pose_key(i)
        if not values.exists(key):
            raise InvalidSettingError('values is missing x{}'.format(i))
        _check_dimension(values.at(key), setting.dof, 'x{}'.format(i))
        graph.add(obstacle_factor(
            key, robot, sdf, setting.obstacle_sigma, setting.safety_margin))
    return graph.error(values)


def _check_robot(robot, robot_class):
    if not isinstance(robot, robot_class):
        raise InvalidSettingError('robot must be {}, but got {}'.format(
            robot_class.__name__, type(robot).__name__))


def _check_sdf_dim(sdf, dim):
    if sdf.dim != dim:
        raise InvalidSettingError(
            'sdf must be {}D, but got {}D'.format(dim, sdf.dim))


def batch_trajectory_optimize_2d_arm(arm, sdf, start_conf, start_vel,
                                     end_conf, end_vel, init_values, setting):
    """Trajectory optimization of an arm in a 2D signed distance field."""
    _check_robot(arm, ArmModel)
    _check_sdf_dim(sdf, 2)
    return batch_trajectory_optimize(arm, sdf, start_conf, start_vel,
                                     end_conf, end_vel, init_values, setting)


def batch_trajectory_optimize_3d_arm(arm, sdf, start_conf, start_vel,
                                     end_conf, end_vel, init_values, setting):
    """Trajectory optimization of an arm in a 3D signed distance field."""
    _check_robot(arm, ArmModel)
    _check_sdf_dim(sdf, 3)
    return batch_trajectory_optimize(arm, sdf, start_conf, start_vel,
                                     end_conf, end_vel, init_values, setting)


def batch_trajectory_optimize_pose2_mobile_arm_2d(
        marm, sdf, start_conf, start_vel, end_conf, end_vel, init_values,
        setting):
    """Trajectory optimization of a mobile arm in a 2D field."""
    _check_robot(marm, Pose2MobileArmModel)
    _check_sdf_dim(sdf, 2)
    return batch_trajectory_optimize(marm, sdf, start_conf, start_vel,
                                     end_conf, end_vel, init_values, setting)


def batch_trajectory_optimize_pose2_mobile_arm(
        marm, sdf, start_conf, start_vel, end_conf, end_vel, init_values,
        setting):
    """Trajectory optimization of a mobile arm in a 3D field."""
    _check_robot(marm, Pose2MobileArmModel)
    _check_sdf_dim(sdf, 3)
    return batch_trajectory_optimize(marm, sdf, start_conf, start_vel,
                                     end_conf, end_vel, init_values, setting)


def collision_cost_2d_arm(arm, sdf, values, setting):
    _check_robot(arm, ArmModel)
    _check_sdf_dim(sdf, 2)
    return collision_cost(arm, sdf, values, setting)


def collision_cost_3d_arm(arm, sdf, values, setting):
    _check_robot(arm, ArmModel)
    _check_sdf_dim(sdf, 3)
    return collision_cost(arm, sdf, values, setting)


def collision_cost_pose2_mobile_arm_2d(marm, sdf, values, setting):
    _check_robot(marm, Pose2MobileArmModel)
    _check_sdf_dim(sdf, 2)
    return collision_cost(marm, sdf, values, setting)


def collision_cost_pose2_mobile_arm(marm, sdf, values, setting):
    _check_robot(marm, Pose2MobileArmModel)
    _check_sdf_dim(sdf, 3)
    return collision_cost(marm, sdf, values, setting)

import unittest

import numpy as np
from numpy import testing

from skgpmp.exceptions import InvalidSettingError
from skgpmp.exceptions import OptimizationFailure
from skgpmp.factors import GPInterpolatedObstacleCostFactor
from skgpmp.factors import JointLimitFactor
from skgpmp.factors import ObstacleCostFactor
from skgpmp.factors import PriorFactor
from skgpmp.factors import VelocityLimitFactor
from skgpmp.geometry import as_vector
from skgpmp.geometry import Pose2Vector
from skgpmp.geometry import retract
from skgpmp.gp import GaussianProcessPriorFactor
from skgpmp.kinematics import Arm
from skgpmp.kinematics import ArmModel
from skgpmp.kinematics import BodySphere
from skgpmp.kinematics import Pose2MobileArm
from skgpmp.kinematics import Pose2MobileArmModel
from skgpmp.planner import batch_trajectory_optimize
from skgpmp.planner import batch_trajectory_optimize_2d_arm
from skgpmp.planner import batch_trajectory_optimize_3d_arm
from skgpmp.planner import batch_trajectory_optimize_pose2_mobile_arm
from skgpmp.planner import batch_trajectory_optimize_pose2_mobile_arm_2d
from skgpmp.planner import build_trajectory_graph
from skgpmp.planner import collision_cost
from skgpmp.planner import collision_cost_2d_arm
from skgpmp.planner import collision_cost_3d_arm
from skgpmp.planner import collision_cost_pose2_mobile_arm
from skgpmp.planner import collision_cost_pose2_mobile_arm_2d
from skgpmp.planner import init_straight_line
from skgpmp.planner import TrajOptimizerSetting
from skgpmp.planner import trajectory_to_arrays
from skgpmp.sdf import PlanarSDF
from skgpmp.sdf import SphereSDF
from skgpmp.sdf import UnionSDF
from skgpmp.values import pose_key
from skgpmp.values import velocity_key


def one_link_arm():
    arm = Arm([1.0], [0.0], [0.0])
    spheres = [BodySphere(0, 0.05, [-1.0 + s, 0.0, 0.0])
               for s in [0.2, 0.4, 0.6, 0.8, 1.0]]
    return ArmModel(arm, spheres)


def circle_planar_sdf(center, radius):
    origin = np.array([-2.0, -2.0])
    cell_size = 0.02
    xs = origin[0] + np.arange(200) * cell_size
    ys = origin[1] + np.arange(200) * cell_size
    X, Y = np.meshgrid(xs, ys, indexing='ij')
    data = np.hypot(X - center[0], Y - center[1]) - radius
    return PlanarSDF(data, origin, cell_size)


def perturbed(values, total_step, scale=0.1):
    values = values.copy()
    for i in range(1, total_step):
        pose = values.at(pose_key(i))
        n = len(as_vector(pose))
        values.update(pose_key(i), retract(
            pose, scale * np.sin(i + np.arange(n))))
        values.update(velocity_key(i), values.at(velocity_key(i))
                      + 0.5 * scale * np.cos(i + np.arange(n)))
    return values


class TestOneLinkArmScenario(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.robot = one_link_arm()
        cls.sdf = circle_planar_sdf([0.0, 1.25], 0.3)
        cls.start_conf = np.array([0.0])
        cls.end_conf = np.array([np.pi])
        cls.start_vel = np.array([np.pi])
        cls.end_vel = np.array([np.pi])
        cls.setting = TrajOptimizerSetting(
            dof=1, total_step=10, total_time=1.0,
            optimizer='levenberg_marquardt')
        cls.init_values = init_straight_line(
            cls.start_conf, cls.end_conf, 10, 1.0)

    def optimize(self, setting, init_values=None):
        if init_values is None:
            init_values = self.init_values
        return batch_trajectory_optimize_2d_arm(
            self.robot, self.sdf, self.start_conf, self.start_vel,
            self.end_conf, self.end_vel, init_values, setting)

    def objective(self, setting, values):
        graph = build_trajectory_graph(
            self.robot, self.sdf, self.start_conf, self.start_vel,
            self.end_conf, self.end_vel, setting)
        return graph.error(values)

    def test_collision_cost_decreases(self):
        initial_cost = collision_cost_2d_arm(
            self.robot, self.sdf, self.init_values, self.setting)
        self.assertGreater(initial_cost, 0.0)
        result = self.optimize(self.setting)
        final_cost = collision_cost_2d_arm(
            self.robot, self.sdf, result, self.setting)
        self.assertLess(final_cost, initial_cost)

    def test_objective_does_not_increase(self):
        for changes in [dict(optimizer='levenberg_marquardt'),
                        dict(optimizer='dogleg'),
                        dict(optimizer='dogleg', obs_check_interp=3),
                        dict(optimizer='gauss_newton',
                             final_iter_no_increase=True)]:
            setting = self.setting.replace(**changes)
            result = self.optimize(setting)
            self.assertLessEqual(
                self.objective(setting, result),
                self.objective(setting, self.init_values) + 1e-9,
                msg=str(changes))

    def test_boundary_match(self):
        result = self.optimize(self.setting)
        poses, velocities = trajectory_to_arrays(result, 10)
        self.assertEqual(poses.shape, (11, 1))
        testing.assert_allclose(poses[0], self.start_conf, atol=1e-3)
        testing.assert_allclose(poses[-1], self.end_conf, atol=1e-3)
        testing.assert_allclose(velocities[0], self.start_vel, atol=1e-3)
        testing.assert_allclose(velocities[-1], self.end_vel, atol=1e-3)

    def boundary_error(self, values):
        poses, velocities = trajectory_to_arrays(values, 10)
        return max(np.abs(poses[0] - self.start_conf).max(),
                   np.abs(poses[-1] - self.end_conf).max(),
                   np.abs(velocities[0] - self.start_vel).max(),
                   np.abs(velocities[-1] - self.end_vel).max())

    def test_boundary_error_scales_with_fixed_sigma(self):
        errors = []
        for fixed_sigma in [1e-2, 1e-4, 0.0]:
            setting = self.setting.replace(fixed_sigma=fixed_sigma)
            error = self.boundary_error(self.optimize(setting))
            self.assertLessEqual(error, 10.0 * setting.prior_sigma,
                                 msg=str(fixed_sigma))
            errors.append(error)
        self.assertLessEqual(errors[1], errors[0])
        self.assertLessEqual(errors[2], errors[1])
        self.assertLess(errors[2], errors[0])

    def test_rerun_does_not_increase_objective(self):
        first = self.optimize(self.setting)
        second = self.optimize(self.setting, init_values=first)
        self.assertLessEqual(self.objective(self.setting, second),
                             self.objective(self.setting, first) + 1e-9)

    def test_init_values_untouched(self):
        before = self.init_values.copy()
        self.optimize(self.setting)
        self.assertTrue(self.init_values.equals(before, tol=0.0))

    def test_max_iterations_raises_by_default(self):
        setting = self.setting.replace(
            max_iterations=1, relative_error_tol=0.0, absolute_error_tol=0.0)
        with self.assertRaises(OptimizationFailure) as cm:
            self.optimize(setting)
        self.assertIsNotNone(cm.exception.values)
        self.assertEqual(cm.exception.iterations, 1)

    def test_max_iterations_warns_without_raising(self):
        setting = self.setting.replace(
            max_iterations=1, relative_error_tol=0.0, absolute_error_tol=0.0,
            raise_on_max_iterations=False)
        self.assertEqual(setting.verbosity, 'silent')
        with self.assertLogs('skgpmp.optimizers.base', level='WARNING') as cm:
            result = self.optimize(setting)
        self.assertTrue(any('Maximum number of iterations' in line
                            for line in cm.output))
        self.assertFalse(result.equals(self.init_values))

    def test_verbosity(self):
        setting = self.setting.replace(verbosity='error')
        with self.assertLogs('skgpmp.optimizers.base', level='INFO'):
            self.optimize(setting)

    def test_collision_cost_is_zero_when_clear(self):
        far_sdf = circle_planar_sdf([1.5, -1.5], 0.1)
        self.assertEqual(
            collision_cost(self.robot, far_sdf, self.init_values,
                           self.setting), 0.0)


class TestAvoidableObstacleScenario(unittest.TestCase):

    @classmethod
    def setUpClass(cls):
        cls.robot = one_link_arm()
        # small circle between the tips of x5 and x6 of the straight line
        angle = 0.55 * np.pi
        cls.sdf = circle_planar_sdf(
            [1.3 * np.cos(angle), 1.3 * np.sin(angle)], 0.15)
        cls.start_conf = np.array([0.0])
        cls.end_conf = np.array([np.pi])
        cls.vel = np.array([np.pi / 5.0])
        cls.setting = TrajOptimizerSetting(
            dof=1, total_step=10, total_time=5.0, obstacle_sigma=0.01,
            relative_error_tol=1e-4)
        cls.init_values = init_straight_line(
            cls.start_conf, cls.end_conf, 10, 5.0)

    def test_collision_cost_drops(self):
        initial_cost = collision_cost_2d_arm(
            self.robot, self.sdf, self.init_values, self.setting)
        self.assertGreater(initial_cost, 10.0)
        for optimizer in ['levenberg_marquardt', 'dogleg']:
            setting = self.setting.replace(optimizer=optimizer)
            result = batch_trajectory_optimize_2d_arm(
                self.robot, self.sdf, self.start_conf, self.vel,
                self.end_conf, self.vel, self.init_values, setting)
            final_cost = collision_cost_2d_arm(
                self.robot, self.sdf, result, setting)
            self.assertLess(final_cost, 0.1 * initial_cost, msg=optimizer)
            # the support states around the obstacle move apart
            self.assertLess(result.at(pose_key(5))[0], 0.5 * np.pi)
            self.assertGreater(result.at(pose_key(6))[0], 0.6 * np.pi)


class TestObstacleFreeOptimum(unittest.TestCase):

    def setUp(self):
        self.robot = ArmModel(
            Arm([0.5, 0.5], [0.0, 0.0], [0.0, 0.0]),
            [BodySphere(0, 0.05, [0.0, 0.0, 0.0]),
             BodySphere(1, 0.05, [0.0, 0.0, 0.0])])
        self.sdf = UnionSDF([], dim=2)
        self.start_conf = np.array([0.0, 0.5])
        self.end_conf = np.array([1.0, -0.5])
        self.vel = (self.end_conf - self.start_conf) / 2.0
        self.straight = init_straight_line(
            self.start_conf, self.end_conf, 10, 2.0)

    def test_constant_velocity_line(self):
        init_values = perturbed(self.straight, 10)
        expected_poses, expected_vels = trajectory_to_arrays(
            self.straight, 10)
        for optimizer in ['gauss_newton', 'dogleg', 'levenberg_marquardt']:
            for obs_check_interp in [0, 3]:
                setting = TrajOptimizerSetting(
                    dof=2, total_step=10, total_time=2.0,
                    obs_check_interp=obs_check_interp, optimizer=optimizer,
                    relative_error_tol=1e-10, absolute_error_tol=1e-14)
                result = batch_trajectory_optimize(
                    self.robot, self.sdf, self.start_conf, self.vel,
                    self.end_conf, self.vel, init_values, setting)
                poses, vels = trajectory_to_arrays(result, 10)
                msg = '{} {}'.format(optimizer, obs_check_interp)
                testing.assert_allclose(poses, expected_poses, atol=1e-5,
                                        err_msg=msg)
                testing.assert_allclose(vels, expected_vels, atol=1e-4,
                                        err_msg=msg)

    def test_idempotent(self):
        setting = TrajOptimizerSetting(
            dof=2, total_step=10, total_time=2.0,
            relative_error_tol=1e-10, absolute_error_tol=1e-14)
        first = batch_trajectory_optimize(
            self.robot, self.sdf, self.start_conf, self.vel, self.end_conf,
            self.vel, perturbed(self.straight, 10), setting)
        second = batch_trajectory_optimize(
            self.robot, self.sdf, self.start_conf, self.vel, self.end_conf,
            self.vel, first, setting)
        self.assertTrue(second.equals(first, tol=1e-6))


class TestInterpolatedCheck(unittest.TestCase):

    def setUp(self):
        self.robot = one_link_arm()
        self.sdf = SphereSDF([0.0, 1.0], 0.1)
        self.setting = TrajOptimizerSetting(
            dof=1, total_step=1, total_time=1.0, safety_margin=0.02,
            obs_check_interp=1)
        self.values = init_straight_line(
            np.array([np.pi / 2 - 0.3]), np.array([np.pi / 2 + 0.3]),
            1, 1.0)

    def test_interpolation_reveals_collision(self):
        self.assertEqual(collision_cost(self.robot, self.sdf, self.values,
                                        self.setting), 0.0)
        graph = build_trajectory_graph(
            self.robot, self.sdf, self.values.at(pose_key(0)),
            self.values.at(velocity_key(0)), self.values.at(pose_key(1)),
            self.values.at(velocity_key(1)), self.setting)
        support = [f for f in graph if isinstance(f, ObstacleCostFactor)]
        interpolated = [f for f in graph
                        if isinstance(f, GPInterpolatedObstacleCostFactor)]
        self.assertEqual(len(support), 2)
        self.assertEqual(len(interpolated), 1)
        testing.assert_almost_equal(interpolated[0].tau, 0.5)
        for factor in support:
            self.assertEqual(factor.error(self.values), 0.0)
        self.assertGreater(interpolated[0].error(self.values), 0.0)
        self.assertGreater(graph.error(self.values), 0.0)


class TestGraphStructure(unittest.TestCase):

    def setUp(self):
        self.robot = one_link_arm()
        self.sdf = UnionSDF([], dim=2)

    def build(self, **kwargs):
        setting = TrajOptimizerSetting(dof=1, total_step=10, total_time=1.0,
                                       **kwargs)
        return build_trajectory_graph(
            self.robot, self.sdf, np.zeros(1), np.zeros(1), np.ones(1),
            np.zeros(1), setting)

    def count(self, graph, factor_class):
        return sum(1 for f in graph if isinstance(f, factor_class))

    def test_factor_counts(self):
        graph = self.build(obs_check_interp=3)
        self.assertEqual(self.count(graph, PriorFactor), 4)
        self.assertEqual(self.count(graph, ObstacleCostFactor), 11)
        self.assertEqual(
            self.count(graph, GPInterpolatedObstacleCostFactor), 30)
        self.assertEqual(self.count(graph, GaussianProcessPriorFactor), 10)
        self.assertEqual(len(graph), 55)
        taus = sorted(set(
            round(f.tau, 9) for f in graph
            if isinstance(f, GPInterpolatedObstacleCostFactor)))
        testing.assert_almost_equal(taus, [0.025, 0.05, 0.075])

    def test_factor_order(self):
        factors = list(self.build(obs_check_interp=1))
        self.assertIsInstance(factors[0], PriorFactor)
        self.assertEqual(factors[0].keys, (pose_key(0),))
        self.assertEqual(factors[1].keys, (velocity_key(0),))
        self.assertIsInstance(factors[2], ObstacleCostFactor)
        self.assertIsInstance(factors[3], ObstacleCostFactor)
        self.assertIsInstance(factors[4], GPInterpolatedObstacleCostFactor)
        self.assertIsInstance(factors[5], GaussianProcessPriorFactor)
        self.assertEqual(factors[5].keys, (pose_key(0), velocity_key(0),
                                           pose_key(1), velocity_key(1)))

    def test_limit_factors(self):
        graph = self.build(flag_pos_limit=True, joint_pos_limits_down=-1.0,
                           joint_pos_limits_up=1.0, flag_vel_limit=True,
                           vel_limits=2.0)
        self.assertEqual(self.count(graph, JointLimitFactor), 11)
        self.assertEqual(self.count(graph, VelocityLimitFactor), 11)
        self.assertEqual(len(graph), 4 + 11 + 10 + 22)

    def test_custom_factor_constructors(self):
        created = []

        def obstacle_factor(*args):
            factor = ObstacleCostFactor(*args)
            created.append(factor)
            return factor

        setting = TrajOptimizerSetting(dof=1, total_step=4, total_time=1.0)
        build_trajectory_graph(
            self.robot, self.sdf, np.zeros(1), np.zeros(1), np.ones(1),
            np.zeros(1), setting, obstacle_factor=obstacle_factor)
        self.assertEqual(len(created), 5)


class TestValidation(unittest.TestCase):

    def setUp(self):
        self.robot = one_link_arm()
        self.sdf = UnionSDF([], dim=2)
        self.setting = TrajOptimizerSetting(dof=1, total_step=4,
                                            total_time=1.0)
        self.values = init_straight_line(np.zeros(1), np.ones(1), 4, 1.0)

    def optimize(self, **kwargs):
        args = dict(robot=self.robot, sdf=self.sdf, start_conf=np.zeros(1),
                    start_vel=np.ones(1), end_conf=np.ones(1),
                    end_vel=np.ones(1), init_values=self.values,
                    setting=self.setting)
        args.update(kwargs)
        return batch_trajectory_optimize(**args)

    def test_dof_mismatch(self):
        setting = self.setting.replace(dof=2)
        with self.assertRaises(InvalidSettingError):
            self.optimize(setting=setting)
        with self.assertRaises(InvalidSettingError):
            collision_cost(self.robot, self.sdf, self.values, setting)

    def test_boundary_dimension(self):
        with self.assertRaises(InvalidSettingError):
            self.optimize(start_conf=np.zeros(2))
        with self.assertRaises(InvalidSettingError):
            self.optimize(end_vel=np.zeros(3))

    def test_missing_state(self):
        values = init_straight_line(np.zeros(1), np.ones(1), 3, 1.0)
        with self.assertRaises(InvalidSettingError):
            self.optimize(init_values=values)
        with self.assertRaises(InvalidSettingError):
            collision_cost(self.robot, self.sdf, values, self.setting)

    def test_wrong_state_dimension(self):
        values = self.values.copy()
        values.update(velocity_key(2), np.zeros(2))
        with self.assertRaises(InvalidSettingError):
            self.optimize(init_values=values)

        values = init_straight_line(np.zeros(2), np.ones(2), 4, 1.0)
        with self.assertRaises(InvalidSettingError):
            collision_cost(self.robot, self.sdf, values, self.setting)
        with self.assertRaises(InvalidSettingError):
            collision_cost_2d_arm(
                self.robot, circle_planar_sdf([0.0, 1.0], 0.3), values,
                self.setting)

    def test_setting_type(self):
        with self.assertRaises(InvalidSettingError):
            self.optimize(setting=dict(dof=1, total_step=4, total_time=1.0))

    def test_adapters_check_robot_and_sdf(self):
        args = (np.zeros(1), np.ones(1), np.ones(1), np.ones(1), self.values,
                self.setting)
        with self.assertRaises(InvalidSettingError):
            batch_trajectory_optimize_3d_arm(self.robot, self.sdf, *args)
        with self.assertRaises(InvalidSettingError):
            batch_trajectory_optimize_pose2_mobile_arm_2d(
                self.robot, self.sdf, *args)
        with self.assertRaises(InvalidSettingError):
            collision_cost_pose2_mobile_arm(
                self.robot, self.sdf, self.values, self.setting)

    def test_pose_type_mismatch(self):
        marm = Pose2MobileArmModel(
            Pose2MobileArm(Arm([0.5], [0.0], [0.0])),
            [BodySphere(0, 0.2, [0.0, 0.0, 0.0])])
        setting = TrajOptimizerSetting(dof=4, total_step=4, total_time=1.0)
        values = init_straight_line(np.zeros(4), np.ones(4), 4, 1.0)
        with self.assertRaises(InvalidSettingError):
            batch_trajectory_optimize_pose2_mobile_arm_2d(
                marm, self.sdf, Pose2Vector([0, 0, 0], [0]), np.ones(4),
                Pose2Vector([1, 1, 1], [1]), np.ones(4), values, setting)


class TestArm3D(unittest.TestCase):

    def test_far_obstacle(self):
        arm = Arm([0.0, 0.5], [np.pi / 2, 0.0], [0.3, 0.0])
        robot = ArmModel(arm, [BodySphere(1, 0.05, [0.0, 0.0, 0.0])])
        sdf = SphereSDF([5.0, 5.0, 5.0], 0.5)
        start_conf = np.array([0.0, 0.0])
        end_conf = np.array([1.0, 0.5])
        vel = end_conf - start_conf
        setting = TrajOptimizerSetting(
            dof=2, total_step=5, total_time=1.0, optimizer='gauss_newton',
            obs_check_interp=2)
        straight = init_straight_line(start_conf, end_conf, 5, 1.0)
        self.assertEqual(collision_cost_3d_arm(robot, sdf, straight, setting),
                         0.0)
        result = batch_trajectory_optimize_3d_arm(
            robot, sdf, start_conf, vel, end_conf, vel,
            perturbed(straight, 5), setting)
        self.assertTrue(result.equals(straight, tol=1e-4))


class TestPose2MobileArm(unittest.TestCase):

    def setUp(self):
        marm = Pose2MobileArm(Arm([0.5], [0.0], [0.0]))
        self.robot = Pose2MobileArmModel(
            marm, [BodySphere(0, 0.2, [0.0, 0.0, 0.0]),
                   BodySphere(1, 0.05, [0.0, 0.0, 0.0])])
        self.start_conf = Pose2Vector([0.0, 0.0, 0.0], [0.0])
        self.end_conf = Pose2Vector([1.0, 1.0, 0.5], [0.5])
        self.vel = self.start_conf.local_coordinates(self.end_conf)
        self.straight = init_straight_line(
            self.start_conf, self.end_conf, 10, 1.0)

    def test_obstacle_free_2d(self):
        setting = TrajOptimizerSetting(
            dof=4, total_step=10, total_time=1.0, optimizer='gauss_newton',
            relative_error_tol=1e-10, absolute_error_tol=1e-14)
        sdf = UnionSDF([], dim=2)
        self.assertEqual(collision_cost_pose2_mobile_arm_2d(
            self.robot, sdf, self.straight, setting), 0.0)
        result = batch_trajectory_optimize_pose2_mobile_arm_2d(
            self.robot, sdf, self.start_conf, self.vel, self.end_conf,
            self.vel, perturbed(self.straight, 10), setting)
        self.assertIsInstance(result.at(pose_key(5)), Pose2Vector)
        self.assertTrue(result.equals(self.straight, tol=1e-4))

    def test_base_avoids_obstacle_3d(self):
        setting = TrajOptimizerSetting(
            dof=4, total_step=10, total_time=1.0,
            optimizer='levenberg_marquardt')
        sdf = SphereSDF([0.5, 0.5, 0.0], 0.2)
        initial_cost = collision_cost_pose2_mobile_arm(
            self.robot, sdf, self.straight, setting)
        self.assertGreater(initial_cost, 0.0)
        result = batch_trajectory_optimize_pose2_mobile_arm(
            self.robot, sdf, self.start_conf, self.vel, self.end_conf,
            self.vel, self.straight, setting)
        self.assertLess(collision_cost_pose2_mobile_arm(
            self.robot, sdf, result, setting), initial_cost)
        self.assertTrue(result.at(pose_key(10)).equals(
            self.end_conf, tol=1e-3))

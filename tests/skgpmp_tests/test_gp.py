import unittest

import numpy as np
from numpy import testing

from skgpmp.geometry import Pose2Vector
from skgpmp.gp import calc_lambda
from skgpmp.gp import calc_phi
from skgpmp.gp import calc_psi
from skgpmp.gp import calc_q
from skgpmp.gp import calc_q_inv
from skgpmp.gp import GaussianProcessInterpolator
from skgpmp.gp import GaussianProcessPriorFactor
from skgpmp.gp import qc_matrix
from skgpmp.values import pose_key
from skgpmp.values import Values
from skgpmp.values import velocity_key


def numerical_jacobians(factor, states, eps=1e-6):
    jacobians = []
    for k, state in enumerate(states):
        n = len(state)
        H = np.zeros((factor.dim, n))
        for j in range(n):
            d = np.zeros(n)
            d[j] = eps
            plus = list(states)
            minus = list(states)
            plus[k] = state + d
            minus[k] = state - d
            H[:, j] = (factor.evaluate_error(*plus)
                       - factor.evaluate_error(*minus)) / (2 * eps)
        jacobians.append(H)
    return jacobians


class TestGPUtils(unittest.TestCase):

    def setUp(self):
        self.qc = np.array([[2.0, 0.3], [0.3, 1.0]])

    def test_qc_matrix(self):
        testing.assert_almost_equal(qc_matrix(2.0, 3), 2.0 * np.eye(3))
        testing.assert_almost_equal(qc_matrix(self.qc, 2), self.qc)

    def test_phi(self):
        phi = calc_phi(2, 0.5)
        testing.assert_almost_equal(phi[:2, 2:], 0.5 * np.eye(2))
        testing.assert_almost_equal(phi[2:, :2], np.zeros((2, 2)))
        testing.assert_almost_equal(
            calc_phi(2, 0.3).dot(calc_phi(2, 0.2)), phi)

    def test_q_inv(self):
        for tau in [0.01, 0.1, 1.0, 3.0]:
            testing.assert_almost_equal(
                calc_q(self.qc, tau).dot(calc_q_inv(self.qc, tau)),
                np.eye(4), decimal=6)

    def test_lambda_psi_at_ends(self):
        dt = 0.2
        testing.assert_almost_equal(calc_lambda(self.qc, dt, 0.0), np.eye(4))
        testing.assert_almost_equal(calc_psi(self.qc, dt, 0.0),
                                    np.zeros((4, 4)))
        testing.assert_almost_equal(calc_lambda(self.qc, dt, dt),
                                    np.zeros((4, 4)))
        testing.assert_almost_equal(calc_psi(self.qc, dt, dt), np.eye(4))

    def test_psi_is_independent_of_qc(self):
        testing.assert_almost_equal(
            calc_psi(self.qc, 0.2, 0.05), calc_psi(np.eye(2), 0.2, 0.05))
        testing.assert_almost_equal(
            calc_lambda(self.qc, 0.2, 0.05),
            calc_lambda(np.eye(2), 0.2, 0.05))


class TestGaussianProcessInterpolator(unittest.TestCase):

    def test_invalid_range(self):
        with self.assertRaises(ValueError):
            GaussianProcessInterpolator(0.0, 0.0)
        with self.assertRaises(ValueError):
            GaussianProcessInterpolator(0.1, 0.2)
        with self.assertRaises(ValueError):
            GaussianProcessInterpolator(0.1, -0.01)

    def test_constant_velocity_is_exact(self):
        dt = 0.5
        p1 = np.array([0.0, 1.0])
        v = np.array([1.0, -2.0])
        p2 = p1 + dt * v
        for tau in [0.0, 0.1, 0.25, 0.5]:
            interp = GaussianProcessInterpolator(dt, tau)
            testing.assert_almost_equal(
                interp.interpolate_pose(p1, v, p2, v), p1 + tau * v)
            testing.assert_almost_equal(
                interp.interpolate_velocity(p1, v, p2, v), v)

    def test_end_points(self):
        p1, v1 = np.array([0.3]), np.array([1.0])
        p2, v2 = np.array([1.0]), np.array([-0.5])
        interp = GaussianProcessInterpolator(1.0, 0.0)
        testing.assert_almost_equal(interp.interpolate_pose(p1, v1, p2, v2),
                                    p1)
        interp = GaussianProcessInterpolator(1.0, 1.0)
        testing.assert_almost_equal(interp.interpolate_pose(p1, v1, p2, v2),
                                    p2)
        testing.assert_almost_equal(
            interp.interpolate_velocity(p1, v1, p2, v2), v2)

    def test_jacobians(self):
        interp = GaussianProcessInterpolator(0.4, 0.15)
        states = [np.array([0.1, 0.2]), np.array([1.0, -0.3]),
                  np.array([0.5, 0.1]), np.array([0.2, 0.4])]
        for method in (interp.interpolate_pose, interp.interpolate_velocity):
            _, jacobians = method(*states, with_jacobians=True)
            for k in range(4):
                num = np.zeros((2, 2))
                for j in range(2):
                    d = np.zeros(2)
                    d[j] = 1e-6
                    plus = list(states)
                    minus = list(states)
                    plus[k] = states[k] + d
                    minus[k] = states[k] - d
                    num[:, j] = (method(*plus) - method(*minus)) / 2e-6
                testing.assert_almost_equal(jacobians[k], num, decimal=6)

    def test_pose2_vector_heading_wraps(self):
        p1 = Pose2Vector([0.0, 0.0, np.pi - 0.1], [0.0])
        p2 = Pose2Vector([0.0, 0.0, -np.pi + 0.1], [0.0])
        v = np.array([0.0, 0.0, 0.2, 0.0])
        pose = GaussianProcessInterpolator(1.0, 0.5).interpolate_pose(
            p1, v, p2, v)
        self.assertIsInstance(pose, Pose2Vector)
        testing.assert_almost_equal(abs(pose.pose[2]), np.pi)


class TestGaussianProcessPriorFactor(unittest.TestCase):

    def setUp(self):
        self.qc = np.array([[1.5, 0.2], [0.2, 0.8]])
        self.factor = GaussianProcessPriorFactor(
            pose_key(0), velocity_key(0), pose_key(1), velocity_key(1),
            0.1, self.qc)

    def test_zero_on_constant_velocity(self):
        p1 = np.array([0.1, 0.2])
        v = np.array([1.0, -1.0])
        error = self.factor.evaluate_error(p1, v, p1 + 0.1 * v, v)
        testing.assert_almost_equal(error, np.zeros(4))

    def test_error(self):
        states = [np.array([0.1, 0.2]), np.array([1.0, -1.0]),
                  np.array([0.5, 0.0]), np.array([0.0, 0.3])]
        error = self.factor.evaluate_error(*states)
        expected = np.concatenate([states[2] - states[0] - 0.1 * states[1],
                                   states[3] - states[1]])
        testing.assert_almost_equal(error, expected)

        values = Values(zip(self.factor.keys, states))
        testing.assert_almost_equal(
            self.factor.error(values),
            expected.dot(calc_q_inv(self.qc, 0.1)).dot(expected))

    def test_jacobians(self):
        states = [np.array([0.1, 0.2]), np.array([1.0, -1.0]),
                  np.array([0.5, 0.0]), np.array([0.0, 0.3])]
        _, jacobians = self.factor.evaluate_error(*states,
                                                  with_jacobians=True)
        num = numerical_jacobians(self.factor, states)
        for H, H_num in zip(jacobians, num):
            testing.assert_almost_equal(H, H_num, decimal=6)

    def test_scalar_qc(self):
        factor = GaussianProcessPriorFactor(
            pose_key(0), velocity_key(0), pose_key(1), velocity_key(1),
            0.1, 1.0, dof=3)
        self.assertEqual(factor.dim, 6)
        with self.assertRaises(ValueError):
            GaussianProcessPriorFactor(
                pose_key(0), velocity_key(0), pose_key(1), velocity_key(1),
                0.0, 1.0, dof=3)

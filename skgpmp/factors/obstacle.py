"""Obstacle cost factors built on signed distance fields.

Each body sphere contributes the hinge loss

    max(0, eps + r - d(c))

where ``c`` is the sphere center, ``r`` its radius, ``d`` the signed
distance and ``eps`` the safety margin, so a sphere costs nothing once its
surface clears obstacles by at least ``eps``.
"""

import numpy as np

from skgpmp.factor_graph import NoiseModel
from skgpmp.factor_graph import NoiseModelFactor
from skgpmp.gp.interpolator import GaussianProcessInterpolator


def hinge_loss_obstacle_cost(robot, sdf, pose, epsilon, with_jacobian=False):
    """Per-sphere hinge loss of a robot pose against an SDF.

    Parameters
    ----------
    robot : skgpmp.kinematics.RobotModel
        robot body model.
    sdf : skgpmp.sdf.SignedDistanceFunction
        obstacle field.
    pose : numpy.ndarray or Pose2Vector
        robot pose.
    epsilon : float
        safety margin.
    with_jacobian : bool
        if True, also return the Jacobian.

    Returns
    -------
    error : numpy.ndarray
        (nr_body_spheres,) hinge losses.
    jacobian : numpy.ndarray
        (nr_body_spheres, dof) Jacobian w.r.t. ``pose``.
        Only if with_jacobian.
    """
    if with_jacobian:
        centers, center_jac = robot.sphere_centers(pose, with_jacobian=True)
    else:
        centers = robot.sphere_centers(pose)
    sd_vals, grads = sdf.signed_distance_and_gradient(centers)
    margins = epsilon + robot.sphere_radii
    active = sd_vals <= margins
    error = np.where(active, margins - sd_vals, 0.0)
    if not with_jacobian:
        return error
    jacobian = np.zeros((len(error), robot.dof))
    if np.any(active):
        jacobian[active] = -np.einsum(
            'nk,nkd->nd', grads[active], center_jac[active, :sdf.dim, :])
    return error, jacobian


class ObstacleCostFactor(NoiseModelFactor):
    """Obstacle cost of one support state pose.

    Parameters
    ----------
    pose_key : tuple
        key of the pose state.
    robot : skgpmp.kinematics.RobotModel
        robot body model.
    sdf : skgpmp.sdf.SignedDistanceFunction
        obstacle field.
    cost_sigma : float
        isotropic sigma of the obstacle cost.
    epsilon : float
        safety margin.
    """

    def __init__(self, pose_key, robot, sdf, cost_sigma, epsilon):
        self.robot = robot
        self.sdf = sdf
        self.epsilon = float(epsilon)
        noise_model = NoiseModel.isotropic(robot.nr_body_spheres, cost_sigma)
        super(ObstacleCostFactor, self).__init__((pose_key,), noise_model)

    def evaluate_error(self, pose, with_jacobians=False):
        if not with_jacobians:
            return hinge_loss_obstacle_cost(
                self.robot, self.sdf, pose, self.epsilon)
        error, H = hinge_loss_obstacle_cost(
            self.robot, self.sdf, pose, self.epsilon, with_jacobian=True)
        return error, [H]


class GPInterpolatedObstacleCostFactor(NoiseModelFactor):
    """Obstacle cost of a pose interpolated between two support states.

    The pose at ``tau`` after the earlier support state is obtained with
    the GP interpolator, the hinge loss is evaluated there and its
    Jacobian is mapped back to the four support state variables through
    the interpolation weights. No new variable is introduced.

    Parameters
    ----------
    pose_key1, vel_key1, pose_key2, vel_key2 : tuple
        keys of the earlier and later support states.
    robot : skgpmp.kinematics.RobotModel
        robot body model.
    sdf : skgpmp.sdf.SignedDistanceFunction
        obstacle field.
    cost_sigma : float
        isotropic sigma of the obstacle cost.
    epsilon : float
        safety margin.
    delta_t : float
        time between the support states.
    tau : float
        interpolation time, 0 <= tau <= delta_t.
    """

    def __init__(self, pose_key1, vel_key1, pose_key2, vel_key2,
                 robot, sdf, cost_sigma, epsilon, delta_t, tau):
        self.robot = robot
        self.sdf = sdf
        self.epsilon = float(epsilon)
        self.interpolator = GaussianProcessInterpolator(delta_t, tau)
        noise_model = NoiseModel.isotropic(robot.nr_body_spheres, cost_sigma)
        super(GPInterpolatedObstacleCostFactor, self).__init__(
            (pose_key1, vel_key1, pose_key2, vel_key2), noise_model)

    @property
    def delta_t(self):
        return self.interpolator.delta_t

    @property
    def tau(self):
        return self.interpolator.tau

    def evaluate_error(self, pose1, vel1, pose2, vel2, with_jacobians=False):
        if not with_jacobians:
            pose = self.interpolator.interpolate_pose(
                pose1, vel1, pose2, vel2)
            return hinge_loss_obstacle_cost(
                self.robot, self.sdf, pose, self.epsilon)
        pose, interp_jacobians = self.interpolator.interpolate_pose(
            pose1, vel1, pose2, vel2, with_jacobians=True)
        error, H = hinge_loss_obstacle_cost(
            self.robot, self.sdf, pose, self.epsilon, with_jacobian=True)
        return error, [H.dot(J) for J in interp_jacobians]

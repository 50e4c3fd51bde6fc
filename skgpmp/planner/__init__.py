# flake8: noqa

from skgpmp.planner.batch_trajectory_optimizer import batch_trajectory_optimize
from skgpmp.planner.batch_trajectory_optimizer import batch_trajectory_optimize_2d_arm
from skgpmp.planner.batch_trajectory_optimizer import batch_trajectory_optimize_3d_arm
from skgpmp.planner.batch_trajectory_optimizer import batch_trajectory_optimize_pose2_mobile_arm
from skgpmp.planner.batch_trajectory_optimizer import batch_trajectory_optimize_pose2_mobile_arm_2d
from skgpmp.planner.batch_trajectory_optimizer import build_trajectory_graph
from skgpmp.planner.batch_trajectory_optimizer import collision_cost
from skgpmp.planner.batch_trajectory_optimizer import collision_cost_2d_arm
from skgpmp.planner.batch_trajectory_optimizer import collision_cost_3d_arm
from skgpmp.planner.batch_trajectory_optimizer import collision_cost_pose2_mobile_arm
from skgpmp.planner.batch_trajectory_optimizer import collision_cost_pose2_mobile_arm_2d
from skgpmp.planner.batch_trajectory_optimizer import optimize
from skgpmp.planner.batch_trajectory_optimizer import optimizer_params
from skgpmp.planner.setting import HARD_CONSTRAINT_SIGMA
from skgpmp.planner.setting import TrajOptimizerSetting
from skgpmp.planner.trajectory import init_straight_line
from skgpmp.planner.trajectory import interpolate_trajectory
from skgpmp.planner.trajectory import trajectory_to_arrays

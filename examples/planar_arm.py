#!/usr/bin/env python

import argparse
import logging

import numpy as np

from skgpmp.kinematics import Arm
from skgpmp.kinematics import ArmModel
from skgpmp.kinematics import BodySphere
from skgpmp.planner import batch_trajectory_optimize_2d_arm
from skgpmp.planner import collision_cost_2d_arm
from skgpmp.planner import init_straight_line
from skgpmp.planner import interpolate_trajectory
from skgpmp.planner import TrajOptimizerSetting
from skgpmp.planner import trajectory_to_arrays
from skgpmp.sdf import PlanarSDF


parser = argparse.ArgumentParser(
    formatter_class=argparse.ArgumentDefaultsHelpFormatter,
)
parser.add_argument(
    '-n', '--total-step', type=int, default=10,
    help='number of intervals between support states.')
parser.add_argument(
    '--total-time', type=float, default=2.0,
    help='duration of the trajectory.')
parser.add_argument(
    '--interp', type=int, default=5,
    help='number of interpolated obstacle checks per interval.')
parser.add_argument(
    '--optimizer', type=str,
    choices=['gauss_newton', 'levenberg_marquardt', 'dogleg'],
    default='levenberg_marquardt',
    help='nonlinear least squares optimizer.')
parser.add_argument(
    '--verbose', action='store_true',
    help='log optimizer iterations.')
args = parser.parse_args()

logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING)

# 2-link planar arm with 4 spheres per link
arm = Arm(a=[0.5, 0.5], alpha=[0.0, 0.0], d=[0.0, 0.0])
spheres = []
for link_id in range(2):
    for s in np.linspace(-0.5, 0.0, 4):
        spheres.append(BodySphere(link_id, 0.05, [s, 0.0, 0.0]))
robot = ArmModel(arm, spheres)

# two circular obstacles in a 4m x 4m map
origin = np.array([-2.0, -2.0])
cell_size = 0.01
xs = origin[0] + cell_size * np.arange(400)
X, Y = np.meshgrid(xs, xs, indexing='ij')
field = np.minimum(np.hypot(X - 0.3, Y - 0.6) - 0.15,
                   np.hypot(X + 0.4, Y - 0.5) - 0.1)
sdf = PlanarSDF(field, origin, cell_size)

start_conf = np.array([0.0, 0.0])
end_conf = np.array([np.pi * 0.9, 0.0])
start_vel = np.zeros(2)
end_vel = np.zeros(2)

setting = TrajOptimizerSetting(
    dof=2, total_step=args.total_step, total_time=args.total_time,
    qc=1.0, obstacle_sigma=0.01, safety_margin=0.1,
    obs_check_interp=args.interp, optimizer=args.optimizer,
    verbosity='error' if args.verbose else 'silent')

init_values = init_straight_line(
    start_conf, end_conf, setting.total_step, setting.total_time)
print('initial collision cost: {:.6f}'.format(
    collision_cost_2d_arm(robot, sdf, init_values, setting)))

result = batch_trajectory_optimize_2d_arm(
    robot, sdf, start_conf, start_vel, end_conf, end_vel, init_values,
    setting)
print('final collision cost: {:.6f}'.format(
    collision_cost_2d_arm(robot, sdf, result, setting)))

inter_step = 4
dense = interpolate_trajectory(result, setting.delta_t, inter_step)
poses, _ = trajectory_to_arrays(
    dense, setting.total_step * (inter_step + 1))
np.set_printoptions(precision=3, suppress=True)
print('joint trajectory:')
print(poses)

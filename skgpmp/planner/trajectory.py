"""Trajectory helpers: initial guesses, densification and array export."""

import numpy as np

from skgpmp.geometry import as_vector
from skgpmp.geometry import local_coordinates
from skgpmp.geometry import retract
from skgpmp.gp import GaussianProcessInterpolator
from skgpmp.values import pose_key
from skgpmp.values import POSE
from skgpmp.values import Values
from skgpmp.values import velocity_key


def init_straight_line(start_conf, end_conf, total_step, total_time):
    """Constant-velocity straight line from start to end.

    Parameters
    ----------
    start_conf, end_conf : numpy.ndarray or Pose2Vector
        start and end poses.
    total_step : int
        number of intervals.
    total_time : float
        duration of the trajectory.

    Returns
    -------
    values : skgpmp.values.Values
        ``total_step + 1`` evenly spaced poses, each with the velocity
        ``(end_conf - start_conf) / total_time``.

    Examples
    --------
    >>> import numpy as np
    >>> values = init_straight_line(np.zeros(2), np.ones(2), 4, 2.0)
    >>> values.at(pose_key(2))
    array([0.5, 0.5])
    >>> values.at(velocity_key(0))
    array([0.5, 0.5])
    """
    if total_step < 1:
        raise ValueError('total_step must be positive')
    if total_time <= 0:
        raise ValueError('total_time must be positive')
    diff = local_coordinates(start_conf, end_conf)
    vel = diff / float(total_time)
    values = Values()
    for i in range(total_step + 1):
        ratio = i / float(total_step)
        values.insert(pose_key(i), retract(start_conf, ratio * diff))
        values.insert(velocity_key(i), vel)
    return values


def _last_pose_index(values):
    indices = [key[1] for key in values.keys() if key[0] == POSE]
    if not indices:
        raise ValueError('values has no pose')
    return max(indices)


def interpolate_trajectory(values, delta_t, inter_step, start_index=0,
                           end_index=None):
    """Densify a trajectory with GP interpolation.

    ``inter_step`` interpolated states are inserted between each pair of
    consecutive support states in ``[start_index, end_index]``. The
    result is re-indexed from 0.

    Parameters
    ----------
    values : skgpmp.values.Values
        support states.
    delta_t : float
        time between support states.
    inter_step : int
        number of states inserted in each interval.
    start_index : int
        first support index.
    end_index : int or None
        last support index. The last pose index of ``values`` if None.

    Returns
    -------
    dense_values : skgpmp.values.Values
        ``(end_index - start_index) * (inter_step + 1) + 1`` states.
    """
    if inter_step < 0:
        raise ValueError('inter_step must be non-negative')
    if end_index is None:
        end_index = _last_pose_index(values)
    if not 0 <= start_index <= end_index:
        raise ValueError('invalid index range [{}, {}]'.format(
            start_index, end_index))

    dense = Values()
    inter_dt = delta_t / float(inter_step + 1)
    index = 0
    for i in range(start_index, end_index):
        pose1 = values.at(pose_key(i))
        vel1 = values.at(velocity_key(i))
        pose2 = values.at(pose_key(i + 1))
        vel2 = values.at(velocity_key(i + 1))
        dense.insert(pose_key(index), pose1)
        dense.insert(velocity_key(index), vel1)
        index += 1
        for j in range(1, inter_step + 1):
            interpolator = GaussianProcessInterpolator(delta_t, j * inter_dt)
            dense.insert(pose_key(index), interpolator.interpolate_pose(
                pose1, vel1, pose2, vel2))
            dense.insert(velocity_key(index),
                         interpolator.interpolate_velocity(
                             pose1, vel1, pose2, vel2))
            index += 1
    dense.insert(pose_key(index), values.at(pose_key(end_index)))
    dense.insert(velocity_key(index), values.at(velocity_key(end_index)))
    return dense


def trajectory_to_arrays(values, total_step):
    """Stack the vector forms of poses and velocities.

    Returns
    -------
    poses : numpy.ndarray
        (total_step + 1, dof) poses.
    velocities : numpy.ndarray
        (total_step + 1, dof) velocities.
    """
    poses = np.array([as_vector(values.at(pose_key(i)))
                      for i in range(total_step + 1)])
    velocities = np.array([as_vector(values.at(velocity_key(i)))
                           for i in range(total_step + 1)])
    return poses, velocities

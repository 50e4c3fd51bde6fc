import numpy as np

from skgpmp.geometry import Pose2Vector
from skgpmp.geometry.math import planar_pose_transform
from skgpmp.geometry.math import transform_points


class Pose2MobileArm(object):
    """Arm mounted on a planar mobile base.

    The state is a :class:`Pose2Vector`: base pose ``(x, y, theta)`` on the
    z = 0 plane and the arm joint configuration. Link 0 is the base itself
    and link ``i + 1`` is link ``i`` of the arm.

    Parameters
    ----------
    arm : skgpmp.kinematics.Arm
        arm mounted on the base. Its ``base_pose`` is ignored.
    base_T_arm : numpy.ndarray or None
        4x4 transform of the arm base in the mobile base frame.
    """

    def __init__(self, arm, base_T_arm=None):
        self.arm = arm
        if base_T_arm is None:
            base_T_arm = np.eye(4)
        self.base_T_arm = np.asarray(base_T_arm, dtype=np.float64)
        self.dof = arm.dof + 3

    def forward_kinematics(self, pose):
        """Compute world poses of the base and all arm links.

        Returns
        -------
        link_poses : numpy.ndarray
            (arm.dof + 1, 4, 4) transforms, base first.
        """
        base = planar_pose_transform(pose.pose)
        arm_poses = self.arm.forward_kinematics(
            pose.configuration, base_pose=base.dot(self.base_T_arm))
        return np.concatenate([base[None], arm_poses], axis=0)

    def points(self, pose, link_ids, local_points, with_jacobian=False):
        """World positions of points attached to links.

        Returns
        -------
        points : numpy.ndarray
            (n_points, 3) world positions.
        jacobians : numpy.ndarray
            (n_points, 3, dof) Jacobians w.r.t. the vector form
            ``[x, y, theta, q]``. Only if with_jacobian.
        """
        if not isinstance(pose, Pose2Vector):
            raise TypeError('pose must be Pose2Vector, but got {}'.format(
                type(pose)))
        link_ids = np.asarray(link_ids, dtype=np.int64)
        local_points = np.asarray(local_points, dtype=np.float64)
        n = len(link_ids)
        base = planar_pose_transform(pose.pose)

        points = np.zeros((n, 3))
        jacobians = np.zeros((n, 3, self.dof))
        on_base = link_ids == 0
        if np.any(on_base):
            points[on_base] = transform_points(base, local_points[on_base])
        on_arm = ~on_base
        if np.any(on_arm):
            arm_base = base.dot(self.base_T_arm)
            if with_jacobian:
                arm_points, arm_jac = self.arm.points(
                    pose.configuration, link_ids[on_arm] - 1,
                    local_points[on_arm], base_pose=arm_base,
                    with_jacobian=True)
                jacobians[on_arm, :, 3:] = arm_jac
            else:
                arm_points = self.arm.points(
                    pose.configuration, link_ids[on_arm] - 1,
                    local_points[on_arm], base_pose=arm_base)
            points[on_arm] = arm_points
        if not with_jacobian:
            return points

        jacobians[:, 0, 0] = 1.0
        jacobians[:, 1, 1] = 1.0
        # rotation about world z through the base origin
        rel = points - base[:3, 3][None, :]
        jacobians[:, 0, 2] = -rel[:, 1]
        jacobians[:, 1, 2] = rel[:, 0]
        return points, jacobians

import numpy as np

from skgpmp.geometry.math import dh_transform


class Arm(object):
    """Serial arm of revolute joints described by DH parameters.

    Link ``i`` frame is obtained from link ``i - 1`` frame (the base pose
    for ``i = 0``) by ``Rz(q_i + theta_bias_i) Tz(d_i) Tx(a_i) Rx(alpha_i)``.

    Parameters
    ----------
    a : array-like
        link lengths.
    alpha : array-like
        link twists.
    d : array-like
        link offsets.
    base_pose : numpy.ndarray or None
        4x4 world transform of the arm base. Identity if None.
    theta_bias : array-like or None
        joint angle offsets. Zeros if None.
    """

    def __init__(self, a, alpha, d, base_pose=None, theta_bias=None):
        self.a = np.asarray(a, dtype=np.float64).reshape(-1)
        self.alpha = np.asarray(alpha, dtype=np.float64).reshape(-1)
        self.d = np.asarray(d, dtype=np.float64).reshape(-1)
        self.dof = len(self.a)
        if len(self.alpha) != self.dof or len(self.d) != self.dof:
            raise ValueError('a, alpha and d must have the same length')
        if base_pose is None:
            base_pose = np.eye(4)
        self.base_pose = np.asarray(base_pose, dtype=np.float64)
        if theta_bias is None:
            theta_bias = np.zeros(self.dof)
        self.theta_bias = np.asarray(theta_bias, dtype=np.float64).reshape(-1)

    def _frames(self, q, base_pose):
        """Return the frame before each joint and each link pose."""
        q = np.asarray(q, dtype=np.float64).reshape(-1)
        if len(q) != self.dof:
            raise ValueError(
                'joint configuration must have {} elements, '
                'but got {}'.format(self.dof, len(q)))
        joint_frames = np.zeros((self.dof, 4, 4))
        link_poses = np.zeros((self.dof, 4, 4))
        pose = base_pose
        for i in range(self.dof):
            joint_frames[i] = pose
            pose = pose.dot(dh_transform(
                self.a[i], self.alpha[i], self.d[i],
                q[i] + self.theta_bias[i]))
            link_poses[i] = pose
        return joint_frames, link_poses

    def forward_kinematics(self, q, base_pose=None):
        """Compute world poses of all links.

        Parameters
        ----------
        q : numpy.ndarray
            joint configuration (dof,).
        base_pose : numpy.ndarray or None
            override of the arm base transform.

        Returns
        -------
        link_poses : numpy.ndarray
            (dof, 4, 4) world transforms of the links.
        """
        if base_pose is None:
            base_pose = self.base_pose
        return self._frames(q, base_pose)[1]

    def points(self, q, link_ids, local_points, base_pose=None,
               with_jacobian=False):
        """World positions of points attached to links.

        Parameters
        ----------
        q : numpy.ndarray
            joint configuration (dof,).
        link_ids : array-like
            link index of each point.
        local_points : numpy.ndarray
            (n_points, 3) point positions in their link frames.
        base_pose : numpy.ndarray or None
            override of the arm base transform.
        with_jacobian : bool
            if True, also return the Jacobians.

        Returns
        -------
        points : numpy.ndarray
            (n_points, 3) world positions.
        jacobians : numpy.ndarray
            (n_points, 3, dof) Jacobians w.r.t. q. Only if with_jacobian.
        """
        if base_pose is None:
            base_pose = self.base_pose
        joint_frames, link_poses = self._frames(q, base_pose)
        link_ids = np.asarray(link_ids, dtype=np.int64)
        local_points = np.asarray(local_points, dtype=np.float64)
        rotations = link_poses[link_ids, :3, :3]
        translations = link_poses[link_ids, :3, 3]
        points = np.einsum('nij,nj->ni', rotations, local_points) \
            + translations
        if not with_jacobian:
            return points

        jacobians = np.zeros((len(link_ids), 3, self.dof))
        axes = joint_frames[:, :3, 2]
        origins = joint_frames[:, :3, 3]
        for k in range(self.dof):
            # revolute joint k moves the links k, k+1, ...
            moved = link_ids >= k
            if not np.any(moved):
                continue
            jacobians[moved, :, k] = np.cross(
                axes[k][None, :], points[moved] - origins[k][None, :])
        return points, jacobians

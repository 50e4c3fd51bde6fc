import numpy as np


def wrap_angle(theta):
    """Wrap angle(s) into [-pi, pi).

    Parameters
    ----------
    theta : float or numpy.ndarray
        angle in radian.

    Returns
    -------
    wrapped : float or numpy.ndarray
        wrapped angle in radian.

    Examples
    --------
    >>> import numpy as np
    >>> from skgpmp.geometry.math import wrap_angle
    >>> bool(np.isclose(wrap_angle(3 * np.pi / 2.0), -np.pi / 2.0))
    True
    """
    return (theta + np.pi) % (2.0 * np.pi) - np.pi


def rotation_matrix_z(theta):
    """Return the 3x3 rotation matrix about z axis.

    Parameters
    ----------
    theta : float
        radian

    Returns
    -------
    rot : numpy.ndarray
        counterclockwise rotation about z by theta radians.
    """
    c, s = np.cos(theta), np.sin(theta)
    return np.array([[c, -s, 0.0],
                     [s, c, 0.0],
                     [0.0, 0.0, 1.0]])


def make_transform(rotation=None, translation=None):
    """Return a 4x4 homogeneous transform.

    Parameters
    ----------
    rotation : numpy.ndarray or None
        3x3 rotation matrix. Identity if None.
    translation : numpy.ndarray or list or None
        translation vector. Zeros if None.

    Returns
    -------
    mat : numpy.ndarray
        4x4 homogeneous transform.
    """
    mat = np.eye(4)
    if rotation is not None:
        mat[:3, :3] = rotation
    if translation is not None:
        mat[:3, 3] = translation
    return mat


def planar_pose_transform(pose):
    """Convert planar pose (x, y, theta) to a 4x4 transform on z=0 plane.

    Parameters
    ----------
    pose : numpy.ndarray
        (x, y, theta).

    Returns
    -------
    mat : numpy.ndarray
        4x4 homogeneous transform.
    """
    x, y, theta = pose
    return make_transform(rotation_matrix_z(theta),
                          translation=[x, y, 0.0])


def dh_transform(a, alpha, d, theta):
    """Return DH link transform Rz(theta) Tz(d) Tx(a) Rx(alpha).

    Parameters
    ----------
    a : float
        link length.
    alpha : float
        link twist.
    d : float
        link offset.
    theta : float
        joint angle.

    Returns
    -------
    mat : numpy.ndarray
        4x4 homogeneous transform.
    """
    ct, st = np.cos(theta), np.sin(theta)
    ca, sa = np.cos(alpha), np.sin(alpha)
    return np.array([[ct, -st * ca, st * sa, a * ct],
                     [st, ct * ca, -ct * sa, a * st],
                     [0.0, sa, ca, d],
                     [0.0, 0.0, 0.0, 1.0]])


def transform_points(mat, points):
    """Transform points by a 4x4 homogeneous transform.

    Parameters
    ----------
    mat : numpy.ndarray
        4x4 homogeneous transform.
    points : numpy.ndarray
        (n_points, 3) points.

    Returns
    -------
    transformed : numpy.ndarray
        (n_points, 3) transformed points.
    """
    points = np.asarray(points, dtype=np.float64)
    return points.dot(mat[:3, :3].T) + mat[:3, 3][None, :]

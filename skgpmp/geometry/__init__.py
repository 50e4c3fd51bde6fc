"""Uniform vector-space view of pose and velocity states.

Poses are either plain ``numpy.ndarray`` joint configurations or
:class:`Pose2Vector` instances. Velocities are always ``numpy.ndarray``.
The helpers here let factors and optimizers treat both the same way.
"""

import numpy as np

from skgpmp.geometry.pose2_vector import Pose2Vector


def as_vector(value):
    """Return the vector form of a state value."""
    if isinstance(value, Pose2Vector):
        return value.to_vector()
    return np.asarray(value, dtype=np.float64).reshape(-1)


def dimension(value):
    if isinstance(value, Pose2Vector):
        return value.dim
    return np.asarray(value).size


def retract(value, delta):
    """Move ``value`` by ``delta`` given in vector coordinates."""
    if isinstance(value, Pose2Vector):
        return value.retract(delta)
    return as_vector(value) + np.asarray(delta, dtype=np.float64)


def local_coordinates(value, other):
    """Return the tangent vector from ``value`` to ``other``."""
    if isinstance(value, Pose2Vector):
        return value.local_coordinates(other)
    return as_vector(other) - as_vector(value)


def copy_value(value):
    if isinstance(value, Pose2Vector):
        return value.copy()
    return as_vector(value).copy()


__all__ = [
    'Pose2Vector',
    'as_vector',
    'copy_value',
    'dimension',
    'local_coordinates',
    'retract',
]

"""Container of time-indexed pose and velocity states."""

from collections import OrderedDict

import numpy as np

from skgpmp.geometry import as_vector
from skgpmp.geometry import copy_value
from skgpmp.geometry import dimension
from skgpmp.geometry import retract


POSE = 'x'
VELOCITY = 'v'


def pose_key(index):
    """Key of the pose state at time index ``index``."""
    return (POSE, int(index))


def velocity_key(index):
    """Key of the velocity state at time index ``index``."""
    return (VELOCITY, int(index))


class Values(object):
    """Mapping from state keys to pose or velocity values.

    Keys are ``(kind, index)`` tuples created by :func:`pose_key` and
    :func:`velocity_key`. Insertion order is preserved.
    """

    def __init__(self, items=None):
        self._data = OrderedDict()
        if items is not None:
            if isinstance(items, Values):
                items = items.items()
            elif isinstance(items, dict):
                items = items.items()
            for key, value in items:
                self.insert(key, value)

    def insert(self, key, value):
        if key in self._data:
            raise KeyError('key {} already exists'.format(key))
        self._data[key] = copy_value(value)

    def update(self, key, value):
        if key not in self._data:
            raise KeyError('key {} does not exist'.format(key))
        self._data[key] = copy_value(value)

    def at(self, key):
        try:
            return self._data[key]
        except KeyError:
            raise KeyError('key {} does not exist'.format(key))

    def exists(self, key):
        return key in self._data

    def keys(self):
        return list(self._data.keys())

    def items(self):
        return list(self._data.items())

    def dim(self, key=None):
        """Dimension of one entry, or the total dimension if key is None."""
        if key is not None:
            return dimension(self.at(key))
        return sum(dimension(v) for v in self._data.values())

    def copy(self):
        return Values(self)

    def retract(self, delta, ordering):
        """Return new values moved by the stacked ``delta``.

        Parameters
        ----------
        delta : numpy.ndarray
            stacked tangent vector whose layout is given by ``ordering``.
        ordering : skgpmp.factor_graph.Ordering
            variable layout of ``delta``.

        Returns
        -------
        values : Values
            retracted values. Keys not in ``ordering`` are copied as is.
        """
        result = Values()
        for key, value in self._data.items():
            if key in ordering:
                result.insert(key, retract(value, delta[ordering.slice(key)]))
            else:
                result.insert(key, value)
        return result

    def equals(self, other, tol=1e-9):
        if set(self.keys()) != set(other.keys()):
            return False
        for key in self._data:
            a = as_vector(self.at(key))
            b = as_vector(other.at(key))
            if a.shape != b.shape or not np.allclose(a, b, atol=tol, rtol=0):
                return False
        return True

    def __contains__(self, key):
        return key in self._data

    def __len__(self):
        return len(self._data)

    def __iter__(self):
        return iter(self._data)

    def __repr__(self):
        lines = ['Values with {} entries'.format(len(self))]
        for key, value in self._data.items():
            lines.append('  {}{}: {}'.format(
                key[0], key[1], as_vector(value).tolist()))
        return '\n'.join(lines)

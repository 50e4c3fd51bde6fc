"""Sparse factor graph of whitened least-squares cost terms.

Architecture:
- NoiseModel: whitening of residuals and Jacobians
- NoiseModelFactor: cost term over a few state keys
- FactorGraph: ordered collection of factors, objective and linearization
- Ordering: layout of the stacked state vector used by the optimizers
"""

from abc import ABC
from abc import abstractmethod

import numpy as np
import scipy.linalg
import scipy.sparse

from skgpmp.geometry import dimension


class NoiseModel(object):
    """Gaussian noise model represented by its square-root information.

    Parameters
    ----------
    sqrt_information : numpy.ndarray
        (dim, dim) upper triangular matrix R with R^T R = Sigma^-1.
    """

    def __init__(self, sqrt_information):
        self.sqrt_information = np.atleast_2d(
            np.asarray(sqrt_information, dtype=np.float64))

    @property
    def dim(self):
        return self.sqrt_information.shape[0]

    @classmethod
    def isotropic(cls, dim, sigma):
        """Noise model with covariance sigma^2 I."""
        if sigma <= 0:
            raise ValueError('sigma must be positive, but got {}'.format(
                sigma))
        return cls(np.eye(dim) / sigma)

    @classmethod
    def from_covariance(cls, covariance):
        covariance = np.atleast_2d(np.asarray(covariance, dtype=np.float64))
        information = np.linalg.inv(covariance)
        # R = L^T with L L^T = Sigma^-1
        lower = scipy.linalg.cholesky(information, lower=True)
        return cls(lower.T)

    @classmethod
    def from_information(cls, information):
        information = np.atleast_2d(np.asarray(information, dtype=np.float64))
        lower = scipy.linalg.cholesky(information, lower=True)
        return cls(lower.T)

    def whiten(self, residual):
        return self.sqrt_information.dot(residual)

    def whiten_jacobians(self, jacobians):
        return [self.sqrt_information.dot(H) for H in jacobians]


class NoiseModelFactor(ABC):
    """Base class of cost terms over a subset of the state keys.

    Subclasses implement :meth:`evaluate_error` returning the unwhitened
    residual and, on request, its Jacobian with respect to each key in
    ``keys`` (in vector coordinates of the state).

    Parameters
    ----------
    keys : tuple
        state keys the factor depends on.
    noise_model : NoiseModel
        noise model used for whitening.
    """

    def __init__(self, keys, noise_model):
        self.keys = tuple(keys)
        self.noise_model = noise_model

    @property
    def dim(self):
        return self.noise_model.dim

    @abstractmethod
    def evaluate_error(self, *states, with_jacobians=False):
        """Compute the unwhitened residual.

        Parameters
        ----------
        *states
            state values in the order of ``keys``.
        with_jacobians : bool
            if True, also return the Jacobians.

        Returns
        -------
        error : numpy.ndarray
            residual vector (dim,).
        jacobians : list[numpy.ndarray]
            (dim, state_dim) Jacobian per key. Only if with_jacobians.
        """
        pass

    def _states(self, values):
        return [values.at(key) for key in self.keys]

    def whitened_error(self, values, with_jacobians=False):
        states = self._states(values)
        if not with_jacobians:
            return self.noise_model.whiten(self.evaluate_error(*states))
        error, jacobians = self.evaluate_error(*states, with_jacobians=True)
        return (self.noise_model.whiten(error),
                self.noise_model.whiten_jacobians(jacobians))

    def error(self, values):
        """Squared norm of the whitened residual."""
        r = self.whitened_error(values)
        return float(r.dot(r))


class Ordering(object):
    """Layout of state keys in the stacked optimization vector.

    Parameters
    ----------
    keys : list
        state keys, in stacking order.
    dims : list[int]
        dimension of each key.
    """

    def __init__(self, keys, dims):
        self._keys = list(keys)
        self._offsets = {}
        self._dims = {}
        offset = 0
        for key, dim in zip(self._keys, dims):
            self._offsets[key] = offset
            self._dims[key] = dim
            offset += dim
        self.total_dim = offset

    @classmethod
    def from_values(cls, values):
        """Deterministic ordering: sorted by (kind, index)."""
        keys = sorted(values.keys())
        return cls(keys, [dimension(values.at(k)) for k in keys])

    def slice(self, key):
        offset = self._offsets[key]
        return slice(offset, offset + self._dims[key])

    def offset(self, key):
        return self._offsets[key]

    def keys(self):
        return list(self._keys)

    def __contains__(self, key):
        return key in self._offsets

    def __len__(self):
        return len(self._keys)


class FactorGraph(object):
    """Ordered collection of least-squares factors.

    The objective is the sum of squared whitened residual norms of all
    factors. Factors are always evaluated in insertion order so the
    assembled linear system is reproducible.
    """

    def __init__(self, factors=None):
        self.factors = []
        if factors is not None:
            for factor in factors:
                self.add(factor)

    def add(self, factor):
        self.factors.append(factor)

    def keys(self):
        keys = set()
        for factor in self.factors:
            keys.update(factor.keys)
        return keys

    def error(self, values):
        """Total objective at ``values``."""
        return float(sum(factor.error(values) for factor in self.factors))

    def residual_dim(self):
        return sum(factor.dim for factor in self.factors)

    def linearize(self, values, ordering):
        """Stack whitened residuals and Jacobians.

        Parameters
        ----------
        values : skgpmp.values.Values
            linearization point.
        ordering : Ordering
            column layout of the Jacobian.

        Returns
        -------
        jacobian : scipy.sparse.csr_matrix
            (n_residuals, ordering.total_dim) whitened Jacobian.
        residual : numpy.ndarray
            (n_residuals,) whitened residual.
        """
        rows, cols, data = [], [], []
        residuals = []
        row_offset = 0
        for factor in self.factors:
            r, jacobians = factor.whitened_error(values, with_jacobians=True)
            residuals.append(r)
            m = len(r)
            for key, H in zip(factor.keys, jacobians):
                H = np.asarray(H).reshape(m, -1)
                nz_r, nz_c = np.nonzero(H)
                if len(nz_r) == 0:
                    continue
                rows.append(nz_r + row_offset)
                cols.append(nz_c + ordering.offset(key))
                data.append(H[nz_r, nz_c])
            row_offset += m

        if rows:
            rows = np.concatenate(rows)
            cols = np.concatenate(cols)
            data = np.concatenate(data)
        else:
            rows = cols = np.zeros(0, dtype=np.int64)
            data = np.zeros(0)
        jacobian = scipy.sparse.csr_matrix(
            (data, (rows, cols)), shape=(row_offset, ordering.total_dim))
        if residuals:
            residual = np.concatenate(residuals)
        else:
            residual = np.zeros(0)
        return jacobian, residual

    def __len__(self):
        return len(self.factors)

    def __iter__(self):
        return iter(self.factors)

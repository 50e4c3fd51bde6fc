"""Matrices of the constant-velocity Gaussian-process motion prior.

The prior is a white-noise-on-acceleration model with power spectral
density ``Qc``. Its state is ``[position; velocity]`` and its transition
and process noise over a duration ``tau`` are

    Phi(tau) = [[I, tau I], [0, I]]
    Q(tau)   = [[tau^3/3 Qc, tau^2/2 Qc], [tau^2/2 Qc, tau Qc]]
"""

import numpy as np


def qc_matrix(qc, dof):
    """Return ``qc`` as a (dof, dof) matrix; a scalar means ``qc * I``."""
    qc = np.asarray(qc, dtype=np.float64)
    if qc.ndim == 0:
        return float(qc) * np.eye(dof)
    return qc


def calc_phi(dof, tau):
    """State transition matrix Phi(tau) of shape (2 dof, 2 dof)."""
    eye = np.eye(dof)
    return np.block([[eye, tau * eye],
                     [np.zeros((dof, dof)), eye]])


def calc_q(qc, tau):
    """Process noise covariance Q(tau).

    Parameters
    ----------
    qc : numpy.ndarray
        (dof, dof) power spectral density.
    tau : float
        duration.

    Returns
    -------
    q : numpy.ndarray
        (2 dof, 2 dof) covariance.
    """
    qc = np.atleast_2d(np.asarray(qc, dtype=np.float64))
    return np.block([[tau ** 3 / 3.0 * qc, tau ** 2 / 2.0 * qc],
                     [tau ** 2 / 2.0 * qc, tau * qc]])


def calc_q_inv(qc, tau):
    """Inverse of Q(tau), evaluated in closed form."""
    qc_inv = np.linalg.inv(np.atleast_2d(np.asarray(qc, dtype=np.float64)))
    return np.block([[12.0 / tau ** 3 * qc_inv, -6.0 / tau ** 2 * qc_inv],
                     [-6.0 / tau ** 2 * qc_inv, 4.0 / tau * qc_inv]])


def calc_lambda(qc, delta_t, tau):
    """Weight of the earlier state in the GP interpolation at ``tau``.

    Lambda = Phi(tau) - Q(tau) Phi(delta_t - tau)^T Q(delta_t)^-1 Phi(delta_t)
    """
    qc = np.atleast_2d(np.asarray(qc, dtype=np.float64))
    dof = qc.shape[0]
    return calc_phi(dof, tau) - calc_psi(qc, delta_t, tau).dot(
        calc_phi(dof, delta_t))


def calc_psi(qc, delta_t, tau):
    """Weight of the later state in the GP interpolation at ``tau``.

    Psi = Q(tau) Phi(delta_t - tau)^T Q(delta_t)^-1
    """
    qc = np.atleast_2d(np.asarray(qc, dtype=np.float64))
    dof = qc.shape[0]
    return calc_q(qc, tau).dot(calc_phi(dof, delta_t - tau).T).dot(
        calc_q_inv(qc, delta_t))


def interpolation_coefficients(delta_t, tau):
    """Scalar blocks of Lambda and Psi.

    Because ``Qc`` cancels out of Lambda and Psi, both are Kronecker
    products of a 2x2 scalar block with the identity. The scalar blocks
    are returned here.

    Returns
    -------
    lam : numpy.ndarray
        (2, 2) scalar block of Lambda.
    psi : numpy.ndarray
        (2, 2) scalar block of Psi.
    """
    return (calc_lambda(np.eye(1), delta_t, tau),
            calc_psi(np.eye(1), delta_t, tau))

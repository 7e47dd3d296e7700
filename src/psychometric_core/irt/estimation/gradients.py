"""
Analytical gradients for dichotomous item calibration.

For one item with fixed guessing c the response probability is:
    P(theta) = c + (1 - c) * L(theta),  L = 1 / (1 + exp(-a * (theta - b)))

After the E-step each quadrature point q carries
    n_q = sum_i w_iq            (expected number of respondents at theta_q)
    r_q = sum_i w_iq * u_i      (expected number of correct answers)
so the expected complete-data log-likelihood of the item is:
    Q = sum_q r_q * log P_q + (n_q - r_q) * log(1 - P_q)

Gradients:
    s_q = (r_q - n_q P_q) / (P_q (1 - P_q)) * (1 - c) L_q (1 - L_q)
    dQ / da = sum_q s_q * (theta_q - b)
    dQ / db = -sum_q s_q * a
"""

import numpy as np
from numba import njit  # type: ignore
from numpy.typing import NDArray

from psychometric_core.core.constants import (
    EXPONENT_CLIP_MAX,
    EXPONENT_CLIP_MIN,
)

# Keeps log(P) and log(1 - P) finite
PROBABILITY_FLOOR = 1e-12


@njit  # type: ignore
def item_probabilities(
    theta: NDArray[np.float64], a: float, b: float, c: float
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Logistic core and response probability at each quadrature point.

    Args:
        theta: Quadrature points, shape (n_quadrature,).
        a: Discrimination.
        b: Difficulty.
        c: Guessing.

    Returns:
        (L, P), both shape (n_quadrature,).
    """
    z = a * (theta - b)
    z = np.minimum(np.maximum(z, EXPONENT_CLIP_MIN), EXPONENT_CLIP_MAX)
    logistic = 1.0 / (1.0 + np.exp(-z))
    p = c + (1.0 - c) * logistic
    p = np.minimum(np.maximum(p, PROBABILITY_FLOOR), 1.0 - PROBABILITY_FLOOR)
    return logistic, p


@njit  # type: ignore
def item_negative_expected_log_likelihood(
    params: NDArray[np.float64],
    theta: NDArray[np.float64],
    expected_correct: NDArray[np.float64],
    expected_count: NDArray[np.float64],
    c: float,
) -> float:
    """
    Negative expected complete-data log-likelihood for one item.

    This is the objective function for M-step optimization.

    Args:
        params: [a, b].
        theta: Quadrature points, shape (n_quadrature,).
        expected_correct: r_q, shape (n_quadrature,).
        expected_count: n_q, shape (n_quadrature,).
        c: Fixed guessing parameter.

    Returns:
        Negative expected log-likelihood (to minimize).
    """
    _, p = item_probabilities(theta, params[0], params[1], c)
    expected_ll = np.sum(
        expected_correct * np.log(p)
        + (expected_count - expected_correct) * np.log(1.0 - p)
    )
    return -expected_ll


@njit  # type: ignore
def item_negative_expected_log_likelihood_gradient(
    params: NDArray[np.float64],
    theta: NDArray[np.float64],
    expected_correct: NDArray[np.float64],
    expected_count: NDArray[np.float64],
    c: float,
) -> NDArray[np.float64]:
    """
    Gradient of the negative expected log-likelihood with respect to [a, b].

    Args:
        params: [a, b].
        theta: Quadrature points, shape (n_quadrature,).
        expected_correct: r_q, shape (n_quadrature,).
        expected_count: n_q, shape (n_quadrature,).
        c: Fixed guessing parameter.

    Returns:
        Gradient, shape (2,).
    """
    a = params[0]
    b = params[1]
    logistic, p = item_probabilities(theta, a, b, c)

    # dQ/dP * dP/dz, with z = a * (theta - b)
    residual = (expected_correct - expected_count * p) / (p * (1.0 - p))
    dp_dz = (1.0 - c) * logistic * (1.0 - logistic)
    weighted = residual * dp_dz

    grad = np.empty(2, dtype=np.float64)
    grad[0] = -np.sum(weighted * (theta - b))
    grad[1] = np.sum(weighted * a)
    return grad


@njit  # type: ignore
def item_expected_information(
    params: NDArray[np.float64],
    theta: NDArray[np.float64],
    expected_count: NDArray[np.float64],
    c: float,
) -> NDArray[np.float64]:
    """
    Expected information matrix for [a, b] given expected counts.

        I_jk = sum_q n_q * (dP_q/dj) * (dP_q/dk) / (P_q (1 - P_q))

    Args:
        params: [a, b].
        theta: Quadrature points, shape (n_quadrature,).
        expected_count: n_q, shape (n_quadrature,).
        c: Fixed guessing parameter.

    Returns:
        Information matrix, shape (2, 2).
    """
    a = params[0]
    b = params[1]
    logistic, p = item_probabilities(theta, a, b, c)

    dp_dz = (1.0 - c) * logistic * (1.0 - logistic)
    dp_da = dp_dz * (theta - b)
    dp_db = -dp_dz * a
    weight = expected_count / (p * (1.0 - p))

    info = np.empty((2, 2), dtype=np.float64)
    info[0, 0] = np.sum(weight * dp_da * dp_da)
    info[0, 1] = np.sum(weight * dp_da * dp_db)
    info[1, 0] = info[0, 1]
    info[1, 1] = np.sum(weight * dp_db * dp_db)
    return info

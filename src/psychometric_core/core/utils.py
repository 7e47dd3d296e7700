"""
Core utility functions shared across psychometric_core modules.

This module provides foundational utilities used by the unidimensional
IRT models, the multidimensional calibrator and the simulation helpers.
"""

import numpy as np
from numpy.random import Generator
from numpy.typing import ArrayLike, NDArray

from psychometric_core.core.constants import (
    EXPONENT_CLIP_MAX,
    EXPONENT_CLIP_MIN,
)


def get_rng(seed: int | None = None) -> Generator:
    """
    Create a numpy random Generator with optional seed.

    Args:
        seed: Random seed for reproducibility. If None, uses entropy.

    Returns:
        A numpy random Generator instance.
    """
    return np.random.default_rng(seed)


def sigmoid(x: ArrayLike) -> NDArray[np.float64]:
    """
    Logistic function with the exponent clipped to avoid overflow.

    Args:
        x: Logits, any shape.

    Returns:
        Array of the same shape with values strictly inside (0, 1).
    """
    z = np.clip(
        np.asarray(x, dtype=np.float64), EXPONENT_CLIP_MIN, EXPONENT_CLIP_MAX
    )
    result: NDArray[np.float64] = 1.0 / (1.0 + np.exp(-z))
    return result


def clip_to_bounds(value: float, bounds: tuple[float, float]) -> float:
    """Clip a scalar to a closed interval."""
    return float(min(max(value, bounds[0]), bounds[1]))

"""
Core shared types and utilities for psychometric_core.

This module provides foundational components used by both the IRT
estimators and the multidimensional calibrator.
"""

from psychometric_core.core.data_models import ResponseMatrix
from psychometric_core.core.utils import get_rng, sigmoid

__all__ = [
    "ResponseMatrix",
    "get_rng",
    "sigmoid",
]

"""
IRT (Item Response Theory) module.

This module provides:
- Item parameters and the 1PL / 2PL / 3PL response models
- Ability estimation (MLE, EAP)
- Adaptive item selection (Fisher, Kullback-Leibler)
- Item calibration by MML-EM
- Sampling functions for generating responses
"""

from psychometric_core.irt.estimation.abilities import (
    Response,
    ThetaEstimate,
    estimate_theta,
)
from psychometric_core.irt.estimation.estimator import (
    ItemCalibrator,
    calibrate_items,
)
from psychometric_core.irt.parameters import ItemParameter
from psychometric_core.irt.response_models import ModelKind
from psychometric_core.irt.sampling import (
    sample_abilities,
    simulate_responses,
)
from psychometric_core.irt.selection import rank_items, select_next_item

__all__ = [
    "ItemCalibrator",
    "ItemParameter",
    "ModelKind",
    "Response",
    "ThetaEstimate",
    "calibrate_items",
    "estimate_theta",
    "rank_items",
    "sample_abilities",
    "select_next_item",
    "simulate_responses",
]

"""
Multidimensional ability updates.

This module provides:
- Five component ability dimensions and a learner profile over them
- Q-matrix rows and task weight allocation
- Compensatory, conjunctive and disjunctive interaction models
- Elo-style per-component updates with boundary decay
"""

from psychometric_core.mirt.calibration import (
    ThetaContribution,
    aggregate_theta_contributions,
    calculate_theta_contributions,
    update_component_theta,
)
from psychometric_core.mirt.components import (
    ComponentCode,
    ComponentThetaProfile,
)
from psychometric_core.mirt.enums import CognitiveProcess, InteractionModel
from psychometric_core.mirt.q_matrix import (
    DEFAULT_Q_MATRIX,
    QMatrixEntry,
    TaskTarget,
    allocate_q_matrix_weights,
    get_q_matrix_entry,
)

__all__ = [
    "DEFAULT_Q_MATRIX",
    "CognitiveProcess",
    "ComponentCode",
    "ComponentThetaProfile",
    "InteractionModel",
    "QMatrixEntry",
    "TaskTarget",
    "ThetaContribution",
    "aggregate_theta_contributions",
    "allocate_q_matrix_weights",
    "calculate_theta_contributions",
    "get_q_matrix_entry",
    "update_component_theta",
]

"""
Q-matrix rows: how much each component contributes to a task.

A row is a weight per component. Rows are validated on construction: every
weight must be finite and non-negative and the weights must sum to 1.

Task composition assigns weights to the concrete targets of a task with
allocate_q_matrix_weights, which guarantees primary targets at least half
of the total weight.
"""

import logging
import math
from collections.abc import Mapping, Sequence

from pydantic import BaseModel, ConfigDict, field_validator

from psychometric_core.core.constants import REPORTING_BOUNDS
from psychometric_core.core.utils import clip_to_bounds
from psychometric_core.errors import InvalidParameterError
from psychometric_core.mirt.components import COMPONENTS, ComponentCode
from psychometric_core.mirt.enums import CognitiveProcess, InteractionModel

logger = logging.getLogger(__name__)

Q_WEIGHT_TOLERANCE = 1e-6

# Share of the total weight reserved for primary targets
MIN_PRIMARY_WEIGHT = 0.5
PRIMARY_TARGET_BONUS = 1.5
# Baseline weight for a component the task type doesn't list
UNLISTED_COMPONENT_WEIGHT = 0.1

# Harder processes scale difficulty up and weight down
COGNITIVE_PROCESS_MULTIPLIERS: dict[CognitiveProcess, float] = {
    CognitiveProcess.RECOGNITION: 1.0,
    CognitiveProcess.RECALL: 1.2,
    CognitiveProcess.TRANSFORMATION: 1.4,
    CognitiveProcess.PRODUCTION: 1.6,
}


class QMatrixEntry(BaseModel):
    """
    One Q-matrix row.

    Attributes:
        weights: Weight per component; components left out get 0.
        interaction_model: How the components combine.
        task_type: Task type this row belongs to, if any.
    """

    model_config = ConfigDict(frozen=True)

    weights: dict[ComponentCode, float]
    interaction_model: InteractionModel = InteractionModel.COMPENSATORY
    task_type: str | None = None

    @field_validator("weights", mode="after")
    @classmethod
    def _validate_weights(
        cls, weights: dict[ComponentCode, float]
    ) -> dict[ComponentCode, float]:
        for component, weight in weights.items():
            if not math.isfinite(weight) or weight < 0:
                raise InvalidParameterError(
                    f"Q weight for {component.value} must be finite and "
                    f"non-negative, got {weight}"
                )
        total = sum(weights.values())
        if abs(total - 1.0) > Q_WEIGHT_TOLERANCE:
            raise InvalidParameterError(
                f"Q-matrix weights must sum to 1.0, got {total:.6f}"
            )
        return {
            component: float(weights.get(component, 0.0))
            for component in COMPONENTS
        }

    def weight(self, component: ComponentCode) -> float:
        """Weight of one component."""
        return self.weights[component]

    @property
    def active_components(self) -> tuple[ComponentCode, ...]:
        """Components with a positive weight, in canonical order."""
        return tuple(c for c in COMPONENTS if self.weights[c] > 0)

    @property
    def primary_component(self) -> ComponentCode:
        """Component with the largest weight, first in canonical order."""
        return max(COMPONENTS, key=lambda c: self.weights[c])


def _entry(
    task_type: str,
    model: InteractionModel,
    **weights: float,
) -> QMatrixEntry:
    return QMatrixEntry(
        weights={ComponentCode(k): v for k, v in weights.items()},
        interaction_model=model,
        task_type=task_type,
    )


DEFAULT_TASK_TYPE = "recognition"

DEFAULT_Q_MATRIX: dict[str, QMatrixEntry] = {
    entry.task_type: entry
    for entry in (
        _entry(
            "recognition",
            InteractionModel.COMPENSATORY,
            LEX=0.7,
            PHON=0.2,
            MORPH=0.1,
        ),
        _entry(
            "recall",
            InteractionModel.COMPENSATORY,
            LEX=0.6,
            PHON=0.2,
            MORPH=0.2,
        ),
        _entry(
            "pronunciation",
            InteractionModel.COMPENSATORY,
            PHON=0.7,
            LEX=0.2,
            MORPH=0.1,
        ),
        _entry(
            "word_formation",
            InteractionModel.CONJUNCTIVE,
            MORPH=0.6,
            LEX=0.3,
            PHON=0.1,
        ),
        _entry(
            "sentence_construction",
            InteractionModel.CONJUNCTIVE,
            SYNT=0.5,
            LEX=0.3,
            MORPH=0.2,
        ),
        _entry(
            "production",
            InteractionModel.COMPENSATORY,
            LEX=0.5,
            SYNT=0.3,
            MORPH=0.1,
            PRAG=0.1,
        ),
        _entry(
            "register_shift",
            InteractionModel.DISJUNCTIVE,
            PRAG=0.6,
            LEX=0.2,
            SYNT=0.2,
        ),
    )
    if entry.task_type is not None
}


def get_q_matrix_entry(task_type: str) -> QMatrixEntry:
    """Default row for a task type; unknown types get the recognition row."""
    entry = DEFAULT_Q_MATRIX.get(task_type)
    if entry is None:
        logger.debug(
            f"No Q-matrix row for task type {task_type!r}, "
            f"using {DEFAULT_TASK_TYPE!r}"
        )
        return DEFAULT_Q_MATRIX[DEFAULT_TASK_TYPE]
    return entry


class TaskTarget(BaseModel):
    """
    One learning object targeted by a task.

    Attributes:
        object_id: Identifier of the learning object.
        component: Component the object exercises.
        is_primary: Whether the object is a main focus of the task.
        cognitive_process: Process the task asks for.
        difficulty: Difficulty of the object on the [-3, 3] scale.
        discrimination: Discrimination of the object.
        weight: Share of the task's total weight; 0 until allocated.
    """

    model_config = ConfigDict(frozen=True)

    object_id: str
    component: ComponentCode
    is_primary: bool = False
    cognitive_process: CognitiveProcess = CognitiveProcess.RECALL
    difficulty: float = 0.0
    discrimination: float = 1.0
    weight: float = 0.0


def allocate_q_matrix_weights(
    targets: Sequence[TaskTarget], task_type: str
) -> list[TaskTarget]:
    """
    Assign a weight to every target of a task.

    Raw weight = Q weight of the target's component (0.1 if the task type
    doesn't list it) x 1.5 for primary targets / cognitive process
    multiplier. Weights are normalized to sum to 1 and, if primary targets
    end up with less than half the total, rescaled so they get exactly half.

    Args:
        targets: Targets without weights.
        task_type: Task type for the Q-matrix lookup.

    Returns:
        Copies of the targets with weights that sum to 1.
    """
    if not targets:
        return []

    entry = get_q_matrix_entry(task_type)
    raw = []
    for target in targets:
        q_weight = entry.weight(target.component) or UNLISTED_COMPONENT_WEIGHT
        bonus = PRIMARY_TARGET_BONUS if target.is_primary else 1.0
        multiplier = COGNITIVE_PROCESS_MULTIPLIERS[target.cognitive_process]
        raw.append(q_weight * bonus / multiplier)

    total = sum(raw)
    weights = [w / total for w in raw]

    primary_sum = sum(
        w for w, t in zip(weights, targets, strict=True) if t.is_primary
    )
    secondary_sum = 1.0 - primary_sum

    if 0 < primary_sum < MIN_PRIMARY_WEIGHT:
        remaining = 1.0 - MIN_PRIMARY_WEIGHT
        rescaled = []
        for w, target in zip(weights, targets, strict=True):
            if target.is_primary:
                rescaled.append(w * MIN_PRIMARY_WEIGHT / primary_sum)
            else:
                rescaled.append(w * remaining / secondary_sum)
        weights = rescaled

    return [
        target.model_copy(update={"weight": w})
        for target, w in zip(targets, weights, strict=True)
    ]


def calculate_composite_difficulty(targets: Sequence[TaskTarget]) -> float:
    """
    Weighted task difficulty, scaled by cognitive process and clipped to
    [-3, 3].
    """
    if not targets:
        return 0.0
    weighted_sum = sum(
        t.weight
        * t.difficulty
        * COGNITIVE_PROCESS_MULTIPLIERS[t.cognitive_process]
        for t in targets
    )
    return clip_to_bounds(weighted_sum, REPORTING_BOUNDS)


def q_matrix_from_targets(
    targets: Sequence[TaskTarget],
    interaction_model: InteractionModel = InteractionModel.COMPENSATORY,
    task_type: str | None = None,
) -> QMatrixEntry:
    """
    Collapse weighted targets into one Q-matrix row.

    Args:
        targets: Targets with allocated weights.
        interaction_model: How the components combine.
        task_type: Task type to record on the row.

    Returns:
        QMatrixEntry with each component's summed, renormalized weight.
    """
    totals: dict[ComponentCode, float] = {}
    for target in targets:
        totals[target.component] = (
            totals.get(target.component, 0.0) + target.weight
        )
    grand_total = sum(totals.values())
    if grand_total <= 0:
        raise InvalidParameterError("Targets carry no weight")

    return QMatrixEntry(
        weights={c: w / grand_total for c, w in totals.items()},
        interaction_model=interaction_model,
        task_type=task_type,
    )


def q_matrix_from_mapping(
    weights: Mapping[ComponentCode | str, float],
    interaction_model: InteractionModel = InteractionModel.COMPENSATORY,
) -> QMatrixEntry:
    """Build a row from weights keyed by component code or its name."""
    return QMatrixEntry(
        weights={ComponentCode(k): float(v) for k, v in weights.items()},
        interaction_model=interaction_model,
    )


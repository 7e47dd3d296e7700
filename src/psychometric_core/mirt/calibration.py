"""
Multidimensional Elo-style ability updates.

A multi-component response carries a 0-1 partial-credit score per
component. Every component with a positive Q-matrix weight moves by

    delta_i = K * Q_i * (observed_i - expected) * (1 - |theta_i| / 3)

where expected is the task's success probability under the chosen
interaction model. The boundary decay shrinks updates near +-3, so with
K <= 3 an update can never leave [-3, 3]. The global theta moves by the
weight-averaged component delta.
"""

import logging
import math
from collections.abc import Mapping, Sequence

from pydantic import BaseModel, ConfigDict

from psychometric_core.core.constants import REPORTING_BOUNDS
from psychometric_core.errors import InvalidParameterError
from psychometric_core.irt.estimation.config import MIRTConfig, default_config
from psychometric_core.mirt.components import (
    ComponentCode,
    ComponentThetaProfile,
)
from psychometric_core.mirt.enums import InteractionModel
from psychometric_core.mirt.interaction import (
    TaskParameters,
    expected_probability,
)
from psychometric_core.mirt.q_matrix import QMatrixEntry

logger = logging.getLogger(__name__)

ComponentScores = float | Mapping[ComponentCode | str, float]


class ThetaContribution(BaseModel):
    """
    Change to one component produced by one response.

    Attributes:
        component: Component that moves.
        theta_delta: Signed change in theta.
        weight: Q-matrix weight of the component.
        observed: Partial-credit score for the component.
        expected: Expected probability of success for the task.
    """

    model_config = ConfigDict(frozen=True)

    component: ComponentCode
    theta_delta: float
    weight: float
    observed: float
    expected: float


class ThetaUpdate(BaseModel):
    """Aggregated deltas ready to apply to a profile."""

    model_config = ConfigDict(frozen=True)

    deltas: dict[ComponentCode, float]
    global_delta: float = 0.0


def boundary_decay(theta: float) -> float:
    """Damping factor 1 - |theta| / 3, zero at the reporting bounds."""
    return max(0.0, 1.0 - abs(theta) / REPORTING_BOUNDS[1])


def normalize_scores(
    scores: ComponentScores, q_matrix: QMatrixEntry
) -> dict[ComponentCode, float]:
    """
    Per-component observed scores for every weighted component.

    A single float applies to every component. In a mapping, weighted
    components that are missing are an error.

    Raises:
        InvalidParameterError: If a score lies outside [0, 1] or a
            weighted component has no score.
    """
    if isinstance(scores, Mapping):
        by_component = {ComponentCode(k): float(v) for k, v in scores.items()}
    else:
        by_component = {
            component: float(scores)
            for component in q_matrix.active_components
        }

    result = {}
    for component in q_matrix.active_components:
        if component not in by_component:
            raise InvalidParameterError(
                f"No score for weighted component {component.value}"
            )
        score = by_component[component]
        if not math.isfinite(score) or not 0.0 <= score <= 1.0:
            raise InvalidParameterError(
                f"Score for {component.value} must be in [0, 1], got {score}"
            )
        result[component] = score
    return result


def calculate_theta_contributions(
    profile: ComponentThetaProfile,
    q_matrix: QMatrixEntry,
    scores: ComponentScores,
    model: InteractionModel | str | None = None,
    task_params: TaskParameters | None = None,
    composite_difficulty: float | None = None,
    config: MIRTConfig | None = None,
) -> list[ThetaContribution]:
    """
    Per-component theta changes for one multi-component response.

    Args:
        profile: Learner's current component thetas.
        q_matrix: Weight of each component in the task.
        scores: Partial credit in [0, 1], one float for all components or
            one per weighted component.
        model: Interaction model; defaults to the row's own model.
        task_params: Per-dimension task parameters.
        composite_difficulty: Overall difficulty for the compensatory model.
        config: Learning rate and slip/guess settings.

    Returns:
        One ThetaContribution per weighted component.
    """
    config = config or default_config().mirt
    observed = normalize_scores(scores, q_matrix)
    expected = expected_probability(
        profile,
        q_matrix,
        model,
        task_params,
        composite_difficulty,
        config,
    )

    contributions = []
    for component in q_matrix.active_components:
        weight = q_matrix.weight(component)
        delta = (
            config.learning_rate
            * weight
            * (observed[component] - expected)
            * boundary_decay(profile.theta(component))
        )
        contributions.append(
            ThetaContribution(
                component=component,
                theta_delta=delta,
                weight=weight,
                observed=observed[component],
                expected=expected,
            )
        )
    return contributions


def aggregate_theta_contributions(
    contributions: Sequence[ThetaContribution],
) -> ThetaUpdate:
    """
    Sum contributions per component and average them for the global theta.

    Args:
        contributions: Contributions, possibly several per component.

    Returns:
        ThetaUpdate with summed deltas and the weight-averaged global delta.
    """
    deltas: dict[ComponentCode, float] = {}
    for contribution in contributions:
        deltas[contribution.component] = (
            deltas.get(contribution.component, 0.0) + contribution.theta_delta
        )

    total_weight = sum(c.weight for c in contributions)
    global_delta = 0.0
    if total_weight > 0:
        global_delta = (
            sum(c.weight * c.theta_delta for c in contributions) / total_weight
        )
    return ThetaUpdate(deltas=deltas, global_delta=global_delta)


def update_component_theta(
    profile: ComponentThetaProfile,
    q_matrix: QMatrixEntry,
    scores: ComponentScores,
    model: InteractionModel | str | None = None,
    task_params: TaskParameters | None = None,
    composite_difficulty: float | None = None,
    config: MIRTConfig | None = None,
) -> ComponentThetaProfile:
    """
    Apply one multi-component response to a learner's profile.

    Args:
        profile: Learner's current component thetas.
        q_matrix: Weight of each component in the task. Validated to sum
            to 1 on construction.
        scores: Partial credit in [0, 1], one float or one per component.
        model: "compensatory", "conjunctive" or "disjunctive"; defaults to
            the row's own model.
        task_params: Per-dimension task parameters (a=1, b=0 if omitted).
        composite_difficulty: Overall difficulty for the compensatory model.
        config: Learning rate and slip/guess settings.

    Returns:
        New ComponentThetaProfile with every theta in [-3, 3].
    """
    contributions = calculate_theta_contributions(
        profile,
        q_matrix,
        scores,
        model,
        task_params,
        composite_difficulty,
        config,
    )
    update = aggregate_theta_contributions(contributions)
    logger.debug(
        "Component update: "
        + ", ".join(
            f"{c.value}={d:+.4f}" for c, d in update.deltas.items()
        )
    )
    return profile.with_deltas(update.deltas, update.global_delta)

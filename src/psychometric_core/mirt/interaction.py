"""
Expected success probability for multi-component tasks.

Each dimension has its own task parameters, expressed as an ItemParameter
keyed by component, so per-dimension probabilities use the same 2PL / 3PL
models as single-dimension items.

- Compensatory:  P = sigmoid(sum_i Q_i * a_i * theta_i + d),  d = -difficulty.
  A strong dimension can offset a weak one.
- Conjunctive:   P = 1 - slip if every weighted dimension is mastered,
  else guess (DINA-like).
- Disjunctive:   P = 1 - slip if any weighted dimension is mastered,
  else guess (DINO-like).

A dimension counts as mastered when its own probability reaches the
configured mastery threshold.
"""

from collections.abc import Mapping

from psychometric_core.core.utils import sigmoid
from psychometric_core.irt.estimation.config import MIRTConfig
from psychometric_core.irt.parameters import ItemParameter
from psychometric_core.mirt.components import (
    ComponentCode,
    ComponentThetaProfile,
)
from psychometric_core.mirt.enums import InteractionModel
from psychometric_core.mirt.q_matrix import QMatrixEntry

TaskParameters = Mapping[ComponentCode, ItemParameter]


def dimension_parameters(
    task_params: TaskParameters | None, component: ComponentCode
) -> ItemParameter:
    """Task parameters of one dimension; a=1, b=0 when not supplied."""
    if task_params is not None and component in task_params:
        return task_params[component]
    return ItemParameter.create_default(component.value)


def dimension_probability(
    profile: ComponentThetaProfile,
    component: ComponentCode,
    task_params: TaskParameters | None = None,
) -> float:
    """P(success on one dimension) from that dimension's theta."""
    item = dimension_parameters(task_params, component)
    return float(item.probability(profile.theta(component)))


def default_composite_difficulty(
    q_matrix: QMatrixEntry, task_params: TaskParameters | None = None
) -> float:
    """Q-weighted mean of the per-dimension difficulties."""
    return sum(
        q_matrix.weight(c) * dimension_parameters(task_params, c).b
        for c in q_matrix.active_components
    )


def compensatory_probability(
    profile: ComponentThetaProfile,
    q_matrix: QMatrixEntry,
    task_params: TaskParameters | None = None,
    composite_difficulty: float | None = None,
) -> float:
    """
    Compensatory MIRT probability.

    Args:
        profile: Learner's component thetas.
        q_matrix: Weight of each component in the task.
        task_params: Per-dimension discrimination and difficulty.
        composite_difficulty: Overall task difficulty. Defaults to the
            Q-weighted mean of the per-dimension difficulties.

    Returns:
        Probability in (0, 1).
    """
    if composite_difficulty is None:
        composite_difficulty = default_composite_difficulty(
            q_matrix, task_params
        )

    logit = -composite_difficulty
    for component in q_matrix.active_components:
        a = dimension_parameters(task_params, component).a
        logit += q_matrix.weight(component) * a * profile.theta(component)
    return float(sigmoid(logit))


def _mastered(
    profile: ComponentThetaProfile,
    q_matrix: QMatrixEntry,
    task_params: TaskParameters | None,
    config: MIRTConfig,
) -> list[bool]:
    return [
        dimension_probability(profile, component, task_params)
        >= config.mastery_threshold
        for component in q_matrix.active_components
    ]


def conjunctive_probability(
    profile: ComponentThetaProfile,
    q_matrix: QMatrixEntry,
    task_params: TaskParameters | None = None,
    config: MIRTConfig | None = None,
) -> float:
    """1 - slip if every weighted dimension is mastered, otherwise guess."""
    config = config or MIRTConfig()
    if all(_mastered(profile, q_matrix, task_params, config)):
        return 1.0 - config.slip_rate
    return config.guess_rate


def disjunctive_probability(
    profile: ComponentThetaProfile,
    q_matrix: QMatrixEntry,
    task_params: TaskParameters | None = None,
    config: MIRTConfig | None = None,
) -> float:
    """1 - slip if any weighted dimension is mastered, otherwise guess."""
    config = config or MIRTConfig()
    if any(_mastered(profile, q_matrix, task_params, config)):
        return 1.0 - config.slip_rate
    return config.guess_rate


def expected_probability(
    profile: ComponentThetaProfile,
    q_matrix: QMatrixEntry,
    model: InteractionModel | str | None = None,
    task_params: TaskParameters | None = None,
    composite_difficulty: float | None = None,
    config: MIRTConfig | None = None,
) -> float:
    """
    Expected probability of success under an interaction model.

    Args:
        profile: Learner's component thetas.
        q_matrix: Weight of each component in the task.
        model: Interaction model. Defaults to the row's own model.
        task_params: Per-dimension task parameters.
        composite_difficulty: Overall difficulty for the compensatory model.
        config: Slip, guess and mastery settings.

    Returns:
        Expected probability of success.
    """
    model = InteractionModel(model or q_matrix.interaction_model)
    if model == InteractionModel.CONJUNCTIVE:
        return conjunctive_probability(profile, q_matrix, task_params, config)
    if model == InteractionModel.DISJUNCTIVE:
        return disjunctive_probability(profile, q_matrix, task_params, config)
    return compensatory_probability(
        profile, q_matrix, task_params, composite_difficulty
    )

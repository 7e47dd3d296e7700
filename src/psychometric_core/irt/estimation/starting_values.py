"""
Starting value computation for item calibration.

Difficulty starts at the negative logit of the smoothed proportion correct;
discrimination starts at 1.
"""

import numpy as np

from psychometric_core.core.constants import DIFFICULTY_RANGE
from psychometric_core.core.data_models import ResponseMatrix
from psychometric_core.core.utils import clip_to_bounds
from psychometric_core.irt.parameters import ItemParameter
from psychometric_core.irt.response_models import ModelKind


def compute_proportion_correct(
    data: ResponseMatrix,
    item_idx: int,
    add_constant: float = 0.5,
) -> float:
    """
    Proportion of correct answers for an item with additive smoothing.

    Args:
        data: Response matrix.
        item_idx: Index of the item.
        add_constant: Additive smoothing constant (Laplace smoothing).

    Returns:
        Smoothed proportion in (0, 1); 0.5 for an item nobody answered.
    """
    n_incorrect, n_correct = data.item_response_counts(item_idx)
    total = n_incorrect + n_correct
    if total == 0:
        return 0.5
    return float((n_correct + add_constant) / (total + 2.0 * add_constant))


def initial_difficulty(
    proportion_correct: float, guessing: float = 0.0
) -> float:
    """
    Difficulty implied by a proportion correct at theta = 0.

    With guessing the proportion is first corrected for chance:
        p* = (p - c) / (1 - c)
    """
    p = (proportion_correct - guessing) / (1.0 - guessing)
    p = min(max(p, 0.01), 0.99)
    return clip_to_bounds(-float(np.log(p / (1.0 - p))), DIFFICULTY_RANGE)


def compute_starting_values(
    data: ResponseMatrix,
    model: ModelKind = ModelKind.TWO_PL,
    guessing: float = 0.0,
    item_ids: list[str] | None = None,
) -> list[ItemParameter]:
    """
    Data-driven initial parameters for every item.

    Args:
        data: Response matrix.
        model: Logistic model of the items.
        guessing: Fixed lower asymptote used under 3PL.
        item_ids: Identifiers, one per column. Defaults to "item_<idx>".

    Returns:
        One ItemParameter per column with a=1 and b from the proportion
        correct.
    """
    if item_ids is None:
        item_ids = [f"item_{idx}" for idx in range(data.n_items)]

    params = []
    for item_idx, item_id in enumerate(item_ids):
        default = ItemParameter.create_default(item_id, model, guessing)
        p = compute_proportion_correct(data, item_idx)
        b0 = initial_difficulty(p, default.c)
        params.append(default.with_estimates(a=1.0, b=b0))
    return params

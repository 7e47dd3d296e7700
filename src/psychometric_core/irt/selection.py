"""
Adaptive item selection.

Candidates are ranked by one of:
- Fisher information at the current point estimate. Sharp once the
  ability estimate is precise.
- Kullback-Leibler information: the expected divergence between the
  response distribution at the estimate and at plausible abilities,
  integrated over the N(theta, se^2) posterior. Robust early in a session
  when the estimate is still uncertain.

Selection is a pure ranking; usage counts are supplied by the caller and
only break ties.
"""

import logging
import math
from collections.abc import Iterable, Mapping, Sequence

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict

from psychometric_core.irt.estimation.abilities import ThetaEstimate
from psychometric_core.irt.estimation.config import (
    EstimationConfig,
    default_config,
)
from psychometric_core.irt.estimation.enums import SelectionStrategy
from psychometric_core.irt.estimation.quadrature import (
    create_gauss_hermite_rule,
    integrate_normal,
)
from psychometric_core.irt.parameters import ItemParameter

logger = logging.getLogger(__name__)

# Floor for the posterior SD used by the KL integral
MIN_KL_SD = 1e-3

# Scores equal to this many decimals count as ties
SCORE_DECIMALS = 12


class RankedItem(BaseModel):
    """
    A candidate with its selection score.

    Attributes:
        item: The candidate item.
        score: Information score; higher is better.
        usage_count: Externally supplied exposure count.
        position: Index of the item in the candidate list.
    """

    model_config = ConfigDict(frozen=True)

    item: ItemParameter
    score: float
    usage_count: int = 0
    position: int


def fisher_information(item: ItemParameter, theta: float) -> float:
    """Item Fisher information P'^2 / (P(1 - P)) at theta."""
    return float(item.information(theta))


def _bernoulli_kl(
    p: float, q: NDArray[np.float64]
) -> NDArray[np.float64]:
    """KL(Bernoulli(p) || Bernoulli(q)), elementwise over q."""
    result: NDArray[np.float64] = p * np.log(p / q) + (1.0 - p) * np.log(
        (1.0 - p) / (1.0 - q)
    )
    return result


def kl_information(
    item: ItemParameter,
    theta: float,
    se: float,
    n_points: int = 21,
) -> float:
    """
    Posterior-weighted Kullback-Leibler information of an item.

        KL(theta_hat) = E_{theta ~ N(theta_hat, se^2)} [
            KL(P(. | theta_hat) || P(. | theta)) ]

    Args:
        item: Candidate item.
        theta: Current ability estimate.
        se: Standard error of the estimate. Non-finite values are
            replaced by 1.0; tiny values are floored.
        n_points: Gauss-Hermite points for the integral.

    Returns:
        Non-negative KL information.
    """
    if not math.isfinite(se):
        se = 1.0
    se = max(se, MIN_KL_SD)

    p_hat = float(item.probability(theta))
    return integrate_normal(
        lambda points: _bernoulli_kl(p_hat, item.probability(points)),
        mean=theta,
        sd=se,
        rule=create_gauss_hermite_rule(n_points),
    )


def resolve_strategy(
    strategy: SelectionStrategy | str,
    se: float,
    config: EstimationConfig,
) -> SelectionStrategy:
    """Pick Fisher or KL. AUTO keeps KL until se drops below the threshold."""
    strategy = SelectionStrategy(strategy)
    if strategy != SelectionStrategy.AUTO:
        return strategy
    if math.isfinite(se) and se < config.selection.kl_se_threshold:
        return SelectionStrategy.FISHER
    return SelectionStrategy.KL


def rank_items(
    theta: ThetaEstimate | float,
    candidates: Sequence[ItemParameter],
    strategy: SelectionStrategy | str = SelectionStrategy.FISHER,
    usage_counts: Mapping[str, int] | None = None,
    exclude_ids: Iterable[str] | None = None,
    config: EstimationConfig | None = None,
) -> list[RankedItem]:
    """
    Rank candidate items, best first.

    Args:
        theta: Current ability estimate. A bare float is treated as an
            estimate with the prior SD as its standard error.
        candidates: Candidate items.
        strategy: "fisher", "kl" or "auto".
        usage_counts: Exposure count per item_id, lowest wins a tie.
        exclude_ids: Item ids to leave out (e.g. already administered).
        config: Estimation configuration. Uses defaults if None.

    Returns:
        RankedItem list sorted by score (desc), usage count (asc), then
        input order.
    """
    config = config or default_config()
    if isinstance(theta, ThetaEstimate):
        theta_value, se = theta.theta, theta.se
    else:
        theta_value, se = float(theta), config.quadrature.std

    resolved = resolve_strategy(strategy, se, config)
    usage_counts = usage_counts or {}
    excluded = set(exclude_ids or ())

    ranked = []
    for position, item in enumerate(candidates):
        if item.item_id in excluded:
            continue
        if resolved == SelectionStrategy.FISHER:
            score = fisher_information(item, theta_value)
        else:
            score = kl_information(
                item,
                theta_value,
                se,
                n_points=config.selection.kl_quadrature_points,
            )
        ranked.append(
            RankedItem(
                item=item,
                score=score,
                usage_count=usage_counts.get(item.item_id, 0),
                position=position,
            )
        )

    ranked.sort(
        key=lambda r: (
            -round(r.score, SCORE_DECIMALS),
            r.usage_count,
            r.position,
        )
    )
    return ranked


def select_next_item(
    theta: ThetaEstimate | float,
    candidates: Sequence[ItemParameter],
    strategy: SelectionStrategy | str = SelectionStrategy.FISHER,
    usage_counts: Mapping[str, int] | None = None,
    exclude_ids: Iterable[str] | None = None,
    config: EstimationConfig | None = None,
) -> ItemParameter | None:
    """
    Choose the most informative candidate.

    Args:
        theta: Current ability estimate.
        candidates: Candidate items.
        strategy: "fisher", "kl" or "auto".
        usage_counts: Exposure count per item_id for tie-breaking.
        exclude_ids: Item ids to leave out.
        config: Estimation configuration. Uses defaults if None.

    Returns:
        The best item, or None if no candidate remains.
    """
    ranked = rank_items(
        theta, candidates, strategy, usage_counts, exclude_ids, config
    )
    if not ranked:
        logger.info("No candidate items left to select from")
        return None
    return ranked[0].item

"""
Ability estimation for dichotomous IRT models.

This module provides:
- Maximum Likelihood Estimation (MLE) by Fisher-scoring Newton-Raphson
- Expected A Posteriori (EAP) estimation by quadrature against a normal prior
- A batch EAP over a ResponseMatrix, shared with the calibrator's E-step

Every call is stateless: it takes the full response history and returns a
fresh ThetaEstimate.
"""

import logging
import math
import warnings
from collections.abc import Sequence

import numpy as np
from numpy.typing import NDArray
from pydantic import BaseModel, ConfigDict, model_validator

from psychometric_core.core.constants import REPORTING_BOUNDS, THETA_BOUNDS
from psychometric_core.core.data_models import ResponseMatrix
from psychometric_core.core.utils import clip_to_bounds
from psychometric_core.errors import (
    DivergenceError,
    ExtremePatternWarning,
    InvalidParameterError,
)
from psychometric_core.irt.estimation.config import (
    MIN_MIXED_RESPONSES_FOR_MLE,
    EstimationConfig,
    MLEConfig,
    default_config,
)
from psychometric_core.irt.estimation.enums import (
    EstimateFlag,
    EstimationMethod,
)
from psychometric_core.irt.estimation.quadrature import (
    QuadratureRule,
    ScaledQuadrature,
    compute_eap,
    create_gauss_hermite_rule,
)
from psychometric_core.irt.parameters import ItemParameter

logger = logging.getLogger(__name__)


class Response(BaseModel):
    """
    One recorded answer.

    Attributes:
        correct: Whether the answer was correct.
        item: Parameters of the item that was answered.
    """

    model_config = ConfigDict(frozen=True)

    correct: bool
    item: ItemParameter


class ThetaEstimate(BaseModel):
    """
    Ability estimate on one dimension.

    Attributes:
        theta: Point estimate, within [-4, 4].
        se: Standard error (MLE) or posterior SD (EAP). Finite, >= 0.
        method: Estimator that produced the value.
        flags: Fallbacks and warnings raised while estimating.
        n_iterations: Newton-Raphson iterations (0 for EAP).
        n_responses: Number of responses used.
    """

    model_config = ConfigDict(frozen=True)

    theta: float
    se: float
    method: EstimationMethod
    flags: frozenset[EstimateFlag] = frozenset()
    n_iterations: int = 0
    n_responses: int = 0

    @model_validator(mode="after")
    def _validate_values(self) -> "ThetaEstimate":
        if not math.isfinite(self.theta):
            raise InvalidParameterError(
                f"theta must be finite, got {self.theta}"
            )
        if not math.isfinite(self.se) or self.se < 0:
            raise InvalidParameterError(
                f"se must be finite and non-negative, got {self.se}"
            )
        return self

    @property
    def converged(self) -> bool:
        """Whether the estimator reached its convergence criterion."""
        return EstimateFlag.NON_CONVERGED not in self.flags

    @property
    def reported_theta(self) -> float:
        """Theta clipped to the [-3, 3] reporting scale."""
        return clip_to_bounds(self.theta, REPORTING_BOUNDS)


def is_extreme_pattern(responses: Sequence[Response]) -> bool:
    """True for a non-empty all-correct or all-incorrect pattern."""
    if not responses:
        return False
    outcomes = {r.correct for r in responses}
    return len(outcomes) == 1


def choose_method(responses: Sequence[Response]) -> EstimationMethod:
    """
    MLE is offered only with enough mixed-outcome responses; EAP otherwise.
    """
    if (
        len(responses) >= MIN_MIXED_RESPONSES_FOR_MLE
        and not is_extreme_pattern(responses)
    ):
        return EstimationMethod.MLE
    return EstimationMethod.EAP


def response_log_likelihood(
    theta: NDArray[np.float64], responses: Sequence[Response]
) -> NDArray[np.float64]:
    """
    Log-likelihood of a response pattern at each theta value.

    Args:
        theta: Ability values, shape (n_points,).
        responses: Observed responses.

    Returns:
        log L(theta), shape (n_points,).
    """
    log_lik = np.zeros_like(theta, dtype=np.float64)
    for response in responses:
        p = response.item.probability(theta)
        if response.correct:
            log_lik += np.log(p)
        else:
            log_lik += np.log1p(-p)
    return log_lik


def _score_and_information(
    theta: float, responses: Sequence[Response]
) -> tuple[float, float]:
    """
    Gradient L1 and information-form curvature L2 of the log-likelihood.

        L1 = sum (u - P) * P' / (P * (1 - P))
        L2 = -sum P'^2 / (P * (1 - P))
    """
    l1 = 0.0
    l2 = 0.0
    for response in responses:
        p = float(response.item.probability(theta))
        dp = float(response.item.first_derivative(theta))
        pq = max(p * (1.0 - p), 1e-300)
        u = 1.0 if response.correct else 0.0
        l1 += (u - p) * dp / pq
        l2 -= dp * dp / pq
    return l1, l2


def _prior_fallback(
    method: EstimationMethod,
    prior_mean: float,
    prior_sd: float,
    flag: EstimateFlag,
    n_responses: int,
) -> ThetaEstimate:
    return ThetaEstimate(
        theta=prior_mean,
        se=prior_sd,
        method=method,
        flags=frozenset({flag}),
        n_responses=n_responses,
    )


def estimate_theta_mle(
    responses: Sequence[Response],
    config: MLEConfig | None = None,
    prior_mean: float = 0.0,
    prior_sd: float = 1.0,
) -> ThetaEstimate:
    """
    Estimate theta by maximum likelihood with Newton-Raphson.

    Starts at theta = 0 and iterates theta <- theta - L1 / L2 until
    |delta theta| < tolerance. All-correct and all-incorrect patterns have
    no finite maximum, so they short-circuit to the prior mean.

    Args:
        responses: Observed responses.
        config: Newton-Raphson settings.
        prior_mean: Returned for empty and extreme patterns.
        prior_sd: Returned as se for empty and extreme patterns.

    Returns:
        ThetaEstimate; flagged NON_CONVERGED if the iteration cap was hit.

    Raises:
        DivergenceError: If |L2| drops below config.min_curvature.
    """
    config = config or MLEConfig()
    n = len(responses)

    if n == 0:
        return _prior_fallback(
            EstimationMethod.MLE,
            prior_mean,
            prior_sd,
            EstimateFlag.NO_RESPONSES,
            0,
        )
    if is_extreme_pattern(responses):
        outcome = "correct" if responses[0].correct else "incorrect"
        warnings.warn(
            f"Extreme response pattern ({n} responses, all {outcome}); "
            "returning prior mean",
            ExtremePatternWarning,
            stacklevel=2,
        )
        return _prior_fallback(
            EstimationMethod.MLE,
            prior_mean,
            prior_sd,
            EstimateFlag.EXTREME_PATTERN,
            n,
        )

    flags: set[EstimateFlag] = set()
    theta = 0.0
    converged = False
    iteration = 0

    for iteration in range(1, config.max_iterations + 1):
        l1, l2 = _score_and_information(theta, responses)
        if abs(l2) < config.min_curvature:
            raise DivergenceError(
                theta=theta, curvature=l2, iteration=iteration
            )

        new_theta = clip_to_bounds(theta - l1 / l2, THETA_BOUNDS)
        step = new_theta - theta
        theta = new_theta

        if abs(step) < config.tolerance:
            converged = True
            break

    if not converged:
        logger.warning(
            f"MLE did not converge after {iteration} iterations "
            f"(theta={theta:.4f})"
        )
        flags.add(EstimateFlag.NON_CONVERGED)
    if theta in THETA_BOUNDS:
        flags.add(EstimateFlag.BOUNDARY)

    _, l2 = _score_and_information(theta, responses)
    if abs(l2) < config.min_curvature:
        raise DivergenceError(theta=theta, curvature=l2, iteration=iteration)

    return ThetaEstimate(
        theta=theta,
        se=1.0 / math.sqrt(-l2),
        method=EstimationMethod.MLE,
        flags=frozenset(flags),
        n_iterations=iteration,
        n_responses=n,
    )


def estimate_theta_eap(
    responses: Sequence[Response],
    rule: QuadratureRule | None = None,
    prior_mean: float = 0.0,
    prior_sd: float = 1.0,
) -> ThetaEstimate:
    """
    Estimate theta as the posterior mean under a N(prior_mean, prior_sd^2)
    prior.

        theta_EAP = sum_q theta_q L(theta_q) w_q / sum_q L(theta_q) w_q
        SE = sqrt(E[theta^2 | responses] - theta_EAP^2)

    EAP is bounded by construction and never diverges.

    Args:
        responses: Observed responses.
        rule: Quadrature rule. Defaults to 21-point Gauss-Hermite.
        prior_mean: Prior mean.
        prior_sd: Prior standard deviation.

    Returns:
        ThetaEstimate with the posterior mean and SD.
    """
    n = len(responses)
    if n == 0:
        return _prior_fallback(
            EstimationMethod.EAP,
            prior_mean,
            prior_sd,
            EstimateFlag.NO_RESPONSES,
            0,
        )

    rule = rule or create_gauss_hermite_rule()
    posterior = compute_eap(
        lambda theta: response_log_likelihood(theta, responses),
        prior_mean=prior_mean,
        prior_sd=prior_sd,
        rule=rule,
    )

    flags: set[EstimateFlag] = set()
    if is_extreme_pattern(responses):
        flags.add(EstimateFlag.EXTREME_PATTERN)

    return ThetaEstimate(
        theta=clip_to_bounds(posterior.mean, THETA_BOUNDS),
        se=posterior.sd,
        method=EstimationMethod.EAP,
        flags=frozenset(flags),
        n_responses=n,
    )


def estimate_theta(
    responses: Sequence[Response],
    method: EstimationMethod | str = EstimationMethod.EAP,
    rule: QuadratureRule | None = None,
    config: EstimationConfig | None = None,
) -> ThetaEstimate:
    """
    Estimate a learner's ability from their response history.

    Args:
        responses: Full response history.
        method: "eap" (default), "mle", or "auto". AUTO uses MLE when there
            are at least 5 mixed-outcome responses and falls back to EAP
            if MLE diverges or fails to converge.
        rule: Quadrature rule for EAP. Defaults to the configured
            Gauss-Hermite rule.
        config: Estimation configuration. Uses defaults if None.

    Returns:
        ThetaEstimate.

    Raises:
        DivergenceError: Only for an explicit MLE request.
    """
    config = config or default_config()
    method = EstimationMethod(method)
    prior_mean = config.quadrature.mean
    prior_sd = config.quadrature.std
    rule = rule or create_gauss_hermite_rule(config.quadrature.n_points)

    if method == EstimationMethod.MLE:
        return estimate_theta_mle(responses, config.mle, prior_mean, prior_sd)

    if (
        method == EstimationMethod.AUTO
        and choose_method(responses) == EstimationMethod.MLE
    ):
        try:
            estimate = estimate_theta_mle(
                responses, config.mle, prior_mean, prior_sd
            )
        except DivergenceError as e:
            logger.warning(f"{e}; falling back to EAP")
        else:
            if estimate.converged:
                return estimate
            logger.warning("MLE did not converge; falling back to EAP")

        eap = estimate_theta_eap(responses, rule, prior_mean, prior_sd)
        return eap.model_copy(
            update={"flags": eap.flags | {EstimateFlag.MLE_FALLBACK}}
        )

    return estimate_theta_eap(responses, rule, prior_mean, prior_sd)


def compute_log_likelihood_matrix(
    data: ResponseMatrix,
    items: Sequence[ItemParameter],
    theta: NDArray[np.float64],
) -> NDArray[np.float64]:
    """
    Log-likelihood of every respondent's pattern at every quadrature point.

    Args:
        data: Response matrix, shape (n_respondents, n_items).
        items: Item parameters, one per column.
        theta: Quadrature points, shape (n_quadrature,).

    Returns:
        Array of shape (n_respondents, n_quadrature). Missing responses
        contribute 0.
    """
    if len(items) != data.n_items:
        raise InvalidParameterError(
            f"Expected {data.n_items} item parameters, got {len(items)}"
        )

    log_lik = np.zeros((data.n_respondents, len(theta)), dtype=np.float64)
    correct = (data.responses == 1).astype(np.float64)
    incorrect = (data.responses == 0).astype(np.float64)

    for item_idx, item in enumerate(items):
        p = item.probability(theta)
        log_lik += np.outer(correct[:, item_idx], np.log(p))
        log_lik += np.outer(incorrect[:, item_idx], np.log1p(-p))

    return log_lik


def compute_posteriors(
    log_lik: NDArray[np.float64], quadrature: ScaledQuadrature
) -> tuple[NDArray[np.float64], NDArray[np.float64]]:
    """
    Normalized posteriors and per-respondent log marginal likelihood.

    Args:
        log_lik: Output of compute_log_likelihood_matrix.
        quadrature: Ability grid and prior weights.

    Returns:
        (posteriors of shape (n_respondents, n_quadrature),
         log marginal likelihood of shape (n_respondents,)).
    """
    log_joint = log_lik + np.log(quadrature.weights + 1e-300)[np.newaxis, :]

    # Log-sum-exp for numerical stability
    max_log = np.max(log_joint, axis=1, keepdims=True)
    joint = np.exp(log_joint - max_log)
    row_sums = joint.sum(axis=1, keepdims=True)
    posteriors = joint / (row_sums + 1e-300)

    log_marginal = max_log[:, 0] + np.log(row_sums[:, 0] + 1e-300)
    return posteriors, log_marginal


class AbilityEstimates(BaseModel):
    """
    EAP ability estimates for every respondent in a response matrix.

    Attributes:
        eap: Posterior means, one per respondent.
        se: Posterior standard deviations, one per respondent.
    """

    model_config = ConfigDict(frozen=True)

    eap: tuple[float, ...]
    se: tuple[float, ...]

    @property
    def n_respondents(self) -> int:
        """Number of respondents."""
        return len(self.eap)


def estimate_abilities_eap(
    data: ResponseMatrix,
    items: Sequence[ItemParameter],
    quadrature: ScaledQuadrature,
) -> AbilityEstimates:
    """
    Batch EAP for every row of a response matrix.

    Args:
        data: Response matrix.
        items: Item parameters, one per column.
        quadrature: Ability grid and prior weights.

    Returns:
        AbilityEstimates with posterior means and SDs.
    """
    log_lik = compute_log_likelihood_matrix(data, items, quadrature.points)
    posteriors, _ = compute_posteriors(log_lik, quadrature)
    return summarize_posteriors(posteriors, quadrature.points)


def summarize_posteriors(
    posteriors: NDArray[np.float64], points: NDArray[np.float64]
) -> AbilityEstimates:
    """Posterior mean and SD of every row of a posterior matrix."""
    eap = posteriors @ points
    variance = posteriors @ points**2 - eap**2
    se = np.sqrt(np.maximum(variance, 0.0))

    return AbilityEstimates(
        eap=tuple(float(t) for t in eap),
        se=tuple(float(s) for s in se),
    )

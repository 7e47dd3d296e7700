"""
Gauss-Hermite quadrature for latent variable integration.

Gauss-Hermite rules integrate f(x) * exp(-x^2) exactly for polynomials of
degree up to 2n - 1. With the change of variables
    theta = mean + sd * sqrt(2) * x
they integrate against the N(mean, sd^2) density:
    E[f(theta)] ~= (1 / sqrt(pi)) * sum_i w_i * f(mean + sd * sqrt(2) * x_i)

Rules for 5, 11, 21 and 41 points are tabulated once at import from
numpy's hermgauss and shared as read-only arrays; no roots are solved
per call. Callers pick 11 (interactive), 21 (standard) or 41
(research-grade) points.
"""

import math
from collections.abc import Callable
from dataclasses import dataclass

import numpy as np
from numpy.typing import ArrayLike, NDArray

from psychometric_core.errors import InvalidParameterError
from psychometric_core.irt.estimation.config import (
    DEFAULT_QUADRATURE_POINTS,
    SUPPORTED_QUADRATURE_POINTS,
    QuadratureConfig,
)
from psychometric_core.irt.estimation.enums import QuadratureKind

SQRT_PI = math.sqrt(math.pi)
SQRT_2 = math.sqrt(2.0)


@dataclass(frozen=True)
class QuadratureRule:
    """
    Integration nodes in standardized units.

    Attributes:
        nodes: Node positions x_i, ascending, shape (n,).
        weights: Node weights w_i, shape (n,). Gauss-Hermite weights sum
            to sqrt(pi); uniform weights sum to 1.
        kind: Gauss-Hermite or uniform.
    """

    nodes: NDArray[np.float64]
    weights: NDArray[np.float64]
    kind: QuadratureKind

    @property
    def n(self) -> int:
        """Number of quadrature points."""
        return len(self.nodes)

    @property
    def pairs(self) -> list[tuple[float, float]]:
        """Ordered (x, w) pairs."""
        return [
            (float(x), float(w))
            for x, w in zip(self.nodes, self.weights, strict=True)
        ]

    def scaled(self, mean: float = 0.0, sd: float = 1.0) -> "ScaledQuadrature":
        """
        Map the rule onto an N(mean, sd^2) prior.

        Args:
            mean: Prior mean.
            sd: Prior standard deviation.

        Returns:
            ScaledQuadrature with ability points and prior probabilities.
        """
        if not sd > 0:
            raise InvalidParameterError(f"sd must be positive, got {sd}")

        if self.kind == QuadratureKind.GAUSS_HERMITE:
            points = mean + sd * SQRT_2 * self.nodes
            weights = self.weights / SQRT_PI
        else:
            # Nodes are z-scores; weight each by the standard normal density
            points = mean + sd * self.nodes
            density = np.exp(-0.5 * self.nodes**2)
            weights = self.weights * density
            weights = weights / weights.sum()

        return ScaledQuadrature(
            points=points.astype(np.float64),
            weights=weights.astype(np.float64),
        )


@dataclass(frozen=True)
class ScaledQuadrature:
    """
    Quadrature points and weights on the ability scale.

    Attributes:
        points: Ability values theta_q, shape (n_points,).
        weights: Prior probabilities at each point, shape (n_points,).
            Weights sum to 1.
    """

    points: NDArray[np.float64]
    weights: NDArray[np.float64]

    @property
    def n_points(self) -> int:
        """Number of quadrature points."""
        return len(self.points)


@dataclass(frozen=True)
class PosteriorSummary:
    """Posterior mean and standard deviation of theta."""

    mean: float
    sd: float


def _tabulate_gauss_hermite(n: int) -> QuadratureRule:
    """
    Build an n-point physicists' Gauss-Hermite rule.

    numpy's hermgauss integrates against exp(-x^2), which is exactly the
    convention used by integrate_normal.
    """
    nodes, weights = np.polynomial.hermite.hermgauss(n)
    # Force exact symmetry about 0
    nodes = 0.5 * (nodes - nodes[::-1])
    weights = 0.5 * (weights + weights[::-1])
    nodes.setflags(write=False)
    weights.setflags(write=False)
    return QuadratureRule(
        nodes=nodes, weights=weights, kind=QuadratureKind.GAUSS_HERMITE
    )


GAUSS_HERMITE_RULES: dict[int, QuadratureRule] = {
    n: _tabulate_gauss_hermite(n) for n in SUPPORTED_QUADRATURE_POINTS
}


def create_gauss_hermite_rule(
    n: int = DEFAULT_QUADRATURE_POINTS,
) -> QuadratureRule:
    """
    Return the tabulated Gauss-Hermite rule with n points.

    Args:
        n: Number of points, one of 5, 11, 21, 41.

    Returns:
        Shared, read-only QuadratureRule.

    Raises:
        InvalidParameterError: If n is not a tabulated size.
    """
    try:
        return GAUSS_HERMITE_RULES[n]
    except KeyError:
        raise InvalidParameterError(
            f"Gauss-Hermite rules are tabulated for "
            f"{SUPPORTED_QUADRATURE_POINTS} points, got {n}"
        ) from None


def create_uniform_rule(
    n: int = 41, bounds: tuple[float, float] = (-4.0, 4.0)
) -> QuadratureRule:
    """
    Create an equally spaced, equally weighted rule.

    Fallback for contexts without a Gaussian prior assumption. Nodes are
    expressed in standard deviations, so integrate_normal re-weights them
    by the normal density.

    Args:
        n: Number of points (at least 2).
        bounds: (low, high) range of the nodes in standard units.

    Returns:
        QuadratureRule with weights 1/n.
    """
    low, high = bounds
    if n < 2:
        raise InvalidParameterError(f"n must be at least 2, got {n}")
    if not low < high:
        raise InvalidParameterError(
            f"bounds must be increasing, got {bounds}"
        )

    nodes = np.linspace(low, high, n, dtype=np.float64)
    weights = np.full(n, 1.0 / n, dtype=np.float64)
    nodes.setflags(write=False)
    weights.setflags(write=False)
    return QuadratureRule(
        nodes=nodes, weights=weights, kind=QuadratureKind.UNIFORM
    )


RECOMMENDED_RULES: dict[str, QuadratureRule] = {
    "fast": GAUSS_HERMITE_RULES[11],
    "standard": GAUSS_HERMITE_RULES[21],
    "precise": GAUSS_HERMITE_RULES[41],
}


def get_quadrature(config: QuadratureConfig) -> ScaledQuadrature:
    """
    Ability grid and prior weights for a quadrature configuration.

    Args:
        config: Quadrature configuration specifying number of points,
            mean, and standard deviation.

    Returns:
        ScaledQuadrature with points and weights.
    """
    rule = create_gauss_hermite_rule(config.n_points)
    return rule.scaled(config.mean, config.std)


def integrate_normal(
    f: Callable[[NDArray[np.float64]], ArrayLike],
    mean: float = 0.0,
    sd: float = 1.0,
    rule: QuadratureRule | None = None,
) -> float:
    """
    Approximate the integral of f(x) * phi(x; mean, sd) dx.

    Args:
        f: Vectorized integrand, called once with all ability points.
        mean: Mean of the normal weight function.
        sd: Standard deviation of the normal weight function.
        rule: Quadrature rule. Defaults to the 21-point Gauss-Hermite rule.

    Returns:
        Integral approximation.
    """
    rule = rule or create_gauss_hermite_rule()
    grid = rule.scaled(mean, sd)
    values = np.asarray(f(grid.points), dtype=np.float64)
    return float(np.sum(grid.weights * values))


def compute_eap(
    log_likelihood: Callable[[NDArray[np.float64]], NDArray[np.float64]],
    prior_mean: float = 0.0,
    prior_sd: float = 1.0,
    rule: QuadratureRule | None = None,
) -> PosteriorSummary:
    """
    Posterior mean and SD of theta under a normal prior.

    Works in log space: log posterior = log prior weight + log L(theta),
    normalized with log-sum-exp.

    Args:
        log_likelihood: Vectorized log L(theta | responses).
        prior_mean: Prior mean for theta.
        prior_sd: Prior standard deviation for theta.
        rule: Quadrature rule. Defaults to the 21-point Gauss-Hermite rule.

    Returns:
        PosteriorSummary. Falls back to the prior when the likelihood is
        zero or non-finite everywhere.
    """
    rule = rule or create_gauss_hermite_rule()
    grid = rule.scaled(prior_mean, prior_sd)

    log_post = np.log(grid.weights + 1e-300) + np.asarray(
        log_likelihood(grid.points), dtype=np.float64
    )
    max_log_post = np.max(log_post)
    if not np.isfinite(max_log_post):
        return PosteriorSummary(mean=prior_mean, sd=prior_sd)

    posterior = np.exp(log_post - max_log_post)
    posterior = posterior / posterior.sum()

    mean = float(posterior @ grid.points)
    variance = float(posterior @ (grid.points - mean) ** 2)
    return PosteriorSummary(mean=mean, sd=math.sqrt(max(variance, 0.0)))


def compare_quadrature_methods(
    log_likelihood: Callable[[NDArray[np.float64]], NDArray[np.float64]],
    prior_mean: float = 0.0,
    prior_sd: float = 1.0,
) -> dict[str, PosteriorSummary]:
    """Posterior summaries under each tabulated rule and a uniform grid."""
    return {
        "gauss-hermite-11": compute_eap(
            log_likelihood, prior_mean, prior_sd, GAUSS_HERMITE_RULES[11]
        ),
        "gauss-hermite-21": compute_eap(
            log_likelihood, prior_mean, prior_sd, GAUSS_HERMITE_RULES[21]
        ),
        "gauss-hermite-41": compute_eap(
            log_likelihood, prior_mean, prior_sd, GAUSS_HERMITE_RULES[41]
        ),
        "uniform-41": compute_eap(
            log_likelihood, prior_mean, prior_sd, create_uniform_rule(41)
        ),
    }

"""
Configuration dataclasses for IRT estimation.

This module defines the configuration parameters for:
- Quadrature settings (Gauss-Hermite integration)
- Newton-Raphson settings for MLE ability estimation
- Convergence criteria for the EM calibrator
- Minimum data density for calibration
- Item selection and multidimensional update settings
"""

from dataclasses import dataclass, field
from functools import lru_cache
from importlib import metadata
from typing import Self

import toml

from psychometric_core.core.constants import (
    DIFFICULTY_RANGE,
    DISCRIMINATION_RANGE,
)
from psychometric_core.core.paths import (
    ProjectRootNotFound,
    get_project_root_dir,
)
from psychometric_core.errors import InvalidParameterError
from psychometric_core.settings import EngineSettings, get_settings

# Default quadrature settings. 11 points for interactive use, 21 standard,
# 41 research-grade.
DEFAULT_QUADRATURE_POINTS = 21
SUPPORTED_QUADRATURE_POINTS = (5, 11, 21, 41)

# Default MLE settings
DEFAULT_MLE_MAX_ITERATIONS = 50
DEFAULT_MLE_TOLERANCE = 0.001
DEFAULT_MLE_MIN_CURVATURE = 1e-8
MIN_MIXED_RESPONSES_FOR_MLE = 5

# Default EM settings
DEFAULT_MAX_EM_ITERATIONS = 50
DEFAULT_EM_TOLERANCE = 1e-4
DEFAULT_MAX_LBFGS_ITERATIONS = 100
DEFAULT_LBFGS_TOLERANCE = 1e-9

# Minimum data density for calibration
DEFAULT_MIN_RESPONDENTS = 3
DEFAULT_MIN_ITEMS = 10
DEFAULT_MIN_RESPONSES_PER_ITEM = 5

# Selection: below this posterior SD Fisher information is trusted
DEFAULT_KL_SE_THRESHOLD = 0.5

# Multidimensional Elo-style update
DEFAULT_MIRT_LEARNING_RATE = 0.1
DEFAULT_SLIP_RATE = 0.1
DEFAULT_GUESS_RATE = 0.2
DEFAULT_MASTERY_THRESHOLD = 0.5


def _get_project_version() -> str:
    try:
        root_dir = get_project_root_dir()
    except ProjectRootNotFound:
        # Installed without the source tree next to it
        return metadata.version("psychometric-core")
    with open(root_dir / "pyproject.toml") as f:
        data = toml.load(f)

    version = data.get("project", {}).get("version")

    if not version:
        raise ValueError("Version not found in pyproject.toml")

    assert isinstance(version, str)
    return version


@dataclass(frozen=True)
class QuadratureConfig:
    """
    Configuration for quadrature over the ability prior.

    Attributes:
        n_points: Number of Gauss-Hermite points, one of 5, 11, 21, 41.
        mean: Mean of the ability prior.
        std: Standard deviation of the ability prior.
    """

    n_points: int = DEFAULT_QUADRATURE_POINTS
    mean: float = 0.0
    std: float = 1.0

    def __post_init__(self) -> None:
        if self.n_points not in SUPPORTED_QUADRATURE_POINTS:
            raise InvalidParameterError(
                f"n_points must be one of {SUPPORTED_QUADRATURE_POINTS}, "
                f"got {self.n_points}"
            )
        if not self.std > 0:
            raise InvalidParameterError(
                f"prior std must be positive, got {self.std}"
            )


@dataclass(frozen=True)
class MLEConfig:
    """
    Newton-Raphson settings for maximum likelihood ability estimation.

    Attributes:
        max_iterations: Hard cap; the last estimate is returned flagged
            non-converged when reached.
        tolerance: Converged when |delta theta| falls below this.
        min_curvature: |L2| below this raises DivergenceError.
    """

    max_iterations: int = DEFAULT_MLE_MAX_ITERATIONS
    tolerance: float = DEFAULT_MLE_TOLERANCE
    min_curvature: float = DEFAULT_MLE_MIN_CURVATURE


@dataclass(frozen=True)
class ConvergenceConfig:
    """
    Configuration for EM algorithm convergence.

    Attributes:
        max_em_iterations: Maximum number of EM iterations.
        em_tolerance: EM stops when |LL_new - LL_old| < tolerance.
        max_lbfgs_iterations: Maximum iterations for L-BFGS-B in M-step.
        lbfgs_tolerance: Convergence tolerance for L-BFGS-B optimizer.
    """

    max_em_iterations: int = DEFAULT_MAX_EM_ITERATIONS
    em_tolerance: float = DEFAULT_EM_TOLERANCE
    max_lbfgs_iterations: int = DEFAULT_MAX_LBFGS_ITERATIONS
    lbfgs_tolerance: float = DEFAULT_LBFGS_TOLERANCE


@dataclass(frozen=True)
class ParameterBounds:
    """
    Bounds for item parameters during M-step optimization.

    Attributes:
        discrimination: (min, max) bounds for a.
        difficulty: (min, max) bounds for b.
    """

    discrimination: tuple[float, float] = DISCRIMINATION_RANGE
    difficulty: tuple[float, float] = DIFFICULTY_RANGE


@dataclass(frozen=True)
class DataDensityConfig:
    """
    Minimum data density below which calibration leaves parameters as-is.

    Attributes:
        min_respondents: Rows required in the response matrix.
        min_items: Columns required in the response matrix.
        min_responses_per_item: Observed responses needed before an
            individual item is re-estimated.
    """

    min_respondents: int = DEFAULT_MIN_RESPONDENTS
    min_items: int = DEFAULT_MIN_ITEMS
    min_responses_per_item: int = DEFAULT_MIN_RESPONSES_PER_ITEM


@dataclass(frozen=True)
class SelectionConfig:
    """
    Item selection settings.

    Attributes:
        kl_se_threshold: With SelectionStrategy.AUTO, KL is used while the
            theta standard error is at or above this value.
        kl_quadrature_points: Gauss-Hermite points for the KL integral.
    """

    kl_se_threshold: float = DEFAULT_KL_SE_THRESHOLD
    kl_quadrature_points: int = DEFAULT_QUADRATURE_POINTS


@dataclass(frozen=True)
class MIRTConfig:
    """
    Multidimensional update settings.

    Attributes:
        learning_rate: Elo K factor. Must lie in (0, 3] so that a damped
            update can never leave [-3, 3].
        slip_rate: P(failure | mastered) for conjunctive/disjunctive models.
        guess_rate: P(success | not mastered) for the same models.
        mastery_threshold: Per-dimension probability a dimension must
            reach to count as mastered.
    """

    learning_rate: float = DEFAULT_MIRT_LEARNING_RATE
    slip_rate: float = DEFAULT_SLIP_RATE
    guess_rate: float = DEFAULT_GUESS_RATE
    mastery_threshold: float = DEFAULT_MASTERY_THRESHOLD

    def __post_init__(self) -> None:
        if not 0.0 < self.learning_rate <= 3.0:
            raise InvalidParameterError(
                f"learning_rate must be in (0, 3], got {self.learning_rate}"
            )
        for name in ("slip_rate", "guess_rate", "mastery_threshold"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                raise InvalidParameterError(
                    f"{name} must be in [0, 1], got {value}"
                )


@dataclass(frozen=True)
class EstimationConfig:
    """
    Master configuration for estimation, selection and calibration.

    Attributes:
        quadrature: Settings for Gauss-Hermite quadrature and the prior.
        mle: Newton-Raphson settings.
        convergence: Convergence criteria for EM algorithm.
        bounds: Parameter bounds for optimization.
        density: Minimum data density for calibration.
        selection: Item selection settings.
        mirt: Multidimensional update settings.
        model_version: Version string for reproducibility tracking.
    """

    quadrature: QuadratureConfig = QuadratureConfig()
    mle: MLEConfig = MLEConfig()
    convergence: ConvergenceConfig = ConvergenceConfig()
    bounds: ParameterBounds = ParameterBounds()
    density: DataDensityConfig = DataDensityConfig()
    selection: SelectionConfig = SelectionConfig()
    mirt: MIRTConfig = MIRTConfig()
    model_version: str = field(default_factory=_get_project_version)

    @classmethod
    def from_settings(cls, settings: EngineSettings | None = None) -> Self:
        """Build a configuration from environment-driven settings."""
        settings = settings or get_settings()
        return cls(
            quadrature=QuadratureConfig(
                n_points=settings.quadrature_points,
                mean=settings.prior_mean,
                std=settings.prior_sd,
            ),
            mle=MLEConfig(
                max_iterations=settings.mle_max_iterations,
                tolerance=settings.mle_tolerance,
            ),
            convergence=ConvergenceConfig(
                max_em_iterations=settings.em_max_iterations,
                em_tolerance=settings.em_tolerance,
            ),
            density=DataDensityConfig(
                min_respondents=settings.min_respondents,
                min_items=settings.min_items,
                min_responses_per_item=settings.min_responses_per_item,
            ),
            selection=SelectionConfig(
                kl_se_threshold=settings.kl_se_threshold
            ),
            mirt=MIRTConfig(learning_rate=settings.mirt_learning_rate),
        )


@lru_cache(maxsize=1)
def default_config() -> EstimationConfig:
    """Shared default estimation configuration."""
    return EstimationConfig()

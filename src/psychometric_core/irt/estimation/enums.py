from enum import Enum


class ConvergenceStatus(str, Enum):
    CONVERGED = "converged"
    MAX_ITERATIONS = "max_iterations"
    FAILED = "failed"
    LOW_DATA = "low_data"


class EstimationMethod(str, Enum):
    MLE = "mle"
    EAP = "eap"
    AUTO = "auto"


class SelectionStrategy(str, Enum):
    FISHER = "fisher"
    KL = "kl"
    AUTO = "auto"


class EstimateFlag(str, Enum):
    EXTREME_PATTERN = "extreme_pattern"
    NON_CONVERGED = "non_converged"
    NO_RESPONSES = "no_responses"
    MLE_FALLBACK = "mle_fallback"
    BOUNDARY = "boundary"
    LOW_DATA = "low_data"


class QuadratureKind(str, Enum):
    GAUSS_HERMITE = "gauss-hermite"
    UNIFORM = "uniform"

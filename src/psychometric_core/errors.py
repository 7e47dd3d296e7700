"""
Error taxonomy for psychometric_core.

All errors derive from Exception directly (not ValueError) so they
propagate unchanged out of pydantic validators instead of being wrapped
in a ValidationError.
"""


class PsychometricError(Exception):
    pass


class InvalidParameterError(PsychometricError):
    """Malformed input rejected before any computation."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class DivergenceError(PsychometricError):
    """MLE curvature collapsed; callers should fall back to EAP."""

    def __init__(self, theta: float, curvature: float, iteration: int) -> None:
        self.theta = theta
        self.curvature = curvature
        self.iteration = iteration
        super().__init__(
            f"MLE diverged at iteration {iteration}: "
            f"|L2|={abs(curvature):.3g} at theta={theta:.4f}"
        )


class LowDataError(PsychometricError):
    """Not enough respondents or items for a well-conditioned M-step."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class ExtremePatternWarning(UserWarning):
    """
    All-correct or all-incorrect response pattern.

    Emitted through warnings.warn by MLE; the estimate itself carries
    EstimateFlag.EXTREME_PATTERN.
    """

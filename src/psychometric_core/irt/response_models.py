"""
Dichotomous IRT response models.

This module computes P(correct | theta, item) for the 1PL (Rasch), 2PL and
3PL logistic models together with the analytic first and second
derivatives with respect to theta.

Each model is a stateless singleton. An item picks its model once through
`ItemParameter.response_model`; nothing downstream branches on model names.
"""

from abc import ABC, abstractmethod
from enum import Enum

import numpy as np
from numpy.typing import ArrayLike, NDArray

from psychometric_core.core.constants import (
    DIFFICULTY_RANGE,
    DISCRIMINATION_RANGE,
    GUESSING_RANGE,
)
from psychometric_core.core.utils import sigmoid


class ModelKind(str, Enum):
    ONE_PL = "1pl"
    TWO_PL = "2pl"
    THREE_PL = "3pl"


class ResponseModel(ABC):
    """
    Abstract base for logistic response models.

    Subclasses only decide which of (a, b, c) are free. The shared logistic
    core is:
        L(theta) = 1 / (1 + exp(-a * (theta - b)))
        P(theta) = c + (1 - c) * L(theta)

    Parameters are clipped to their declared ranges and the exponent to
    [-35, 35] before evaluation, so P stays strictly inside (c, 1).
    """

    kind: ModelKind

    @abstractmethod
    def effective_parameters(
        self, a: float, b: float, c: float
    ) -> tuple[float, float, float]:
        """
        Map stored parameters to the (a, b, c) this model evaluates with.

        Args:
            a: Discrimination.
            b: Difficulty.
            c: Guessing.

        Returns:
            Clipped (a, b, c) with fixed parameters substituted.
        """
        ...

    def _logistic(
        self, theta: ArrayLike, a: float, b: float
    ) -> NDArray[np.float64]:
        return sigmoid(a * (np.asarray(theta, dtype=np.float64) - b))

    def probability(
        self, theta: ArrayLike, a: float, b: float, c: float = 0.0
    ) -> NDArray[np.float64]:
        """
        Probability of a correct response.

        Args:
            theta: Ability values, any shape.
            a: Discrimination.
            b: Difficulty.
            c: Guessing (ignored outside 3PL).

        Returns:
            Array of the same shape as theta with values in (c, 1).
        """
        a, b, c = self.effective_parameters(a, b, c)
        logistic = self._logistic(theta, a, b)
        result: NDArray[np.float64] = c + (1.0 - c) * logistic
        return result

    def first_derivative(
        self, theta: ArrayLike, a: float, b: float, c: float = 0.0
    ) -> NDArray[np.float64]:
        """
        dP/dtheta = (1 - c) * a * L * (1 - L).
        """
        a, b, c = self.effective_parameters(a, b, c)
        logistic = self._logistic(theta, a, b)
        result: NDArray[np.float64] = (
            (1.0 - c) * a * logistic * (1.0 - logistic)
        )
        return result

    def second_derivative(
        self, theta: ArrayLike, a: float, b: float, c: float = 0.0
    ) -> NDArray[np.float64]:
        """
        d2P/dtheta2 = (1 - c) * a^2 * L * (1 - L) * (1 - 2L).
        """
        a, b, c = self.effective_parameters(a, b, c)
        logistic = self._logistic(theta, a, b)
        result: NDArray[np.float64] = (
            (1.0 - c)
            * a**2
            * logistic
            * (1.0 - logistic)
            * (1.0 - 2.0 * logistic)
        )
        return result

    def information(
        self, theta: ArrayLike, a: float, b: float, c: float = 0.0
    ) -> NDArray[np.float64]:
        """
        Item Fisher information I(theta) = P'^2 / (P * (1 - P)).

        Reduces to a^2 * P * (1 - P) when c = 0.
        """
        p = self.probability(theta, a, b, c)
        dp = self.first_derivative(theta, a, b, c)
        result: NDArray[np.float64] = dp**2 / np.maximum(
            p * (1.0 - p), 1e-300
        )
        return result


def _clip(value: float, bounds: tuple[float, float]) -> float:
    return float(min(max(value, bounds[0]), bounds[1]))


class OnePLModel(ResponseModel):
    """Rasch model: P = 1 / (1 + exp(-(theta - b)))."""

    kind = ModelKind.ONE_PL

    def effective_parameters(
        self, a: float, b: float, c: float
    ) -> tuple[float, float, float]:
        return 1.0, _clip(b, DIFFICULTY_RANGE), 0.0


class TwoPLModel(ResponseModel):
    """2PL model: P = 1 / (1 + exp(-a * (theta - b)))."""

    kind = ModelKind.TWO_PL

    def effective_parameters(
        self, a: float, b: float, c: float
    ) -> tuple[float, float, float]:
        return (
            _clip(a, DISCRIMINATION_RANGE),
            _clip(b, DIFFICULTY_RANGE),
            0.0,
        )


class ThreePLModel(ResponseModel):
    """
    3PL model with a lower asymptote for guessing:
        P = c + (1 - c) / (1 + exp(-a * (theta - b)))
    """

    kind = ModelKind.THREE_PL

    def effective_parameters(
        self, a: float, b: float, c: float
    ) -> tuple[float, float, float]:
        return (
            _clip(a, DISCRIMINATION_RANGE),
            _clip(b, DIFFICULTY_RANGE),
            _clip(c, GUESSING_RANGE),
        )


RESPONSE_MODELS: dict[ModelKind, ResponseModel] = {
    ModelKind.ONE_PL: OnePLModel(),
    ModelKind.TWO_PL: TwoPLModel(),
    ModelKind.THREE_PL: ThreePLModel(),
}


def get_response_model(kind: ModelKind) -> ResponseModel:
    """Look up the shared model instance for a model kind."""
    return RESPONSE_MODELS[kind]

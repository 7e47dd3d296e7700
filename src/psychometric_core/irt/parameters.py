"""
Item parameter representation.

A dichotomous item is described by discrimination (a), difficulty (b) and
guessing (c) under one of the 1PL / 2PL / 3PL models:
    P(correct | theta) = c + (1 - c) / (1 + exp(-a * (theta - b)))

Out-of-range values are rejected at construction with
InvalidParameterError; they are never clamped silently.
"""

from typing import Self

import numpy as np
from numpy.typing import ArrayLike, NDArray
from pydantic import BaseModel, ConfigDict, model_validator

from psychometric_core.core.constants import (
    DIFFICULTY_RANGE,
    DISCRIMINATION_RANGE,
    GUESSING_RANGE,
)
from psychometric_core.errors import InvalidParameterError
from psychometric_core.irt.response_models import (
    ModelKind,
    ResponseModel,
    get_response_model,
)


class ItemParameter(BaseModel):
    """
    Psychometric profile of one test item.

    Attributes:
        item_id: Unique identifier for the item.
        a: Discrimination in [0.2, 3.0]. Fixed at 1.0 under 1PL.
        b: Difficulty in [-4.0, 4.0].
        c: Guessing in [0, 0.5]. Must be 0 unless the model is 3PL.
        model: Which logistic model the item follows.
    """

    model_config = ConfigDict(frozen=True)

    item_id: str
    a: float = 1.0
    b: float = 0.0
    c: float = 0.0
    model: ModelKind = ModelKind.TWO_PL

    @model_validator(mode="after")
    def _validate_ranges(self) -> "ItemParameter":
        checks = (
            ("a", self.a, DISCRIMINATION_RANGE),
            ("b", self.b, DIFFICULTY_RANGE),
            ("c", self.c, GUESSING_RANGE),
        )
        for name, value, (lower, upper) in checks:
            if not np.isfinite(value) or not lower <= value <= upper:
                raise InvalidParameterError(
                    f"Item {self.item_id}: {name}={value} outside "
                    f"[{lower}, {upper}]"
                )
        return self

    @model_validator(mode="after")
    def _validate_model_specific(self) -> "ItemParameter":
        if self.model != ModelKind.THREE_PL and self.c != 0.0:
            raise InvalidParameterError(
                f"Item {self.item_id}: guessing c={self.c} requires the "
                f"3PL model, got {self.model.value}"
            )
        if self.model == ModelKind.ONE_PL and self.a != 1.0:
            raise InvalidParameterError(
                f"Item {self.item_id}: 1PL items have a fixed "
                f"discrimination of 1.0, got a={self.a}"
            )
        return self

    @property
    def response_model(self) -> ResponseModel:
        """Model variant this item is evaluated with."""
        return get_response_model(self.model)

    def probability(self, theta: ArrayLike) -> NDArray[np.float64]:
        """P(correct | theta) at one or more ability values."""
        return self.response_model.probability(theta, self.a, self.b, self.c)

    def first_derivative(self, theta: ArrayLike) -> NDArray[np.float64]:
        """dP/dtheta at one or more ability values."""
        return self.response_model.first_derivative(
            theta, self.a, self.b, self.c
        )

    def second_derivative(self, theta: ArrayLike) -> NDArray[np.float64]:
        """d2P/dtheta2 at one or more ability values."""
        return self.response_model.second_derivative(
            theta, self.a, self.b, self.c
        )

    def information(self, theta: ArrayLike) -> NDArray[np.float64]:
        """Fisher information at one or more ability values."""
        return self.response_model.information(theta, self.a, self.b, self.c)

    def with_estimates(self, a: float, b: float) -> Self:
        """
        Copy with re-estimated discrimination and difficulty.

        The discrimination is left untouched for 1PL items.
        """
        if self.model == ModelKind.ONE_PL:
            a = self.a
        return self.model_copy(update={"a": float(a), "b": float(b)})

    @classmethod
    def create_default(
        cls,
        item_id: str,
        model: ModelKind = ModelKind.TWO_PL,
        guessing: float = 0.0,
    ) -> Self:
        """
        Create neutral provisional parameters (a=1, b=0).

        Args:
            item_id: Item identifier.
            model: Logistic model of the item.
            guessing: Lower asymptote, only used under 3PL.

        Returns:
            ItemParameter with a=1.0, b=0.0.
        """
        c = guessing if model == ModelKind.THREE_PL else 0.0
        return cls(item_id=item_id, a=1.0, b=0.0, c=c, model=model)

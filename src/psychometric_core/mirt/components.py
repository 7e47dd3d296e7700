"""
Ability dimensions for multi-component tasks.

A learner's profile holds one theta per language component plus a global
theta. All values live on the [-3, 3] reporting scale.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Self

import numpy as np
from pydantic import BaseModel, ConfigDict, model_validator

from psychometric_core.core.constants import REPORTING_BOUNDS
from psychometric_core.core.utils import clip_to_bounds
from psychometric_core.errors import InvalidParameterError


class ComponentCode(str, Enum):
    PHON = "PHON"
    MORPH = "MORPH"
    LEX = "LEX"
    SYNT = "SYNT"
    PRAG = "PRAG"


COMPONENTS: tuple[ComponentCode, ...] = tuple(ComponentCode)


class ComponentThetaProfile(BaseModel):
    """
    Per-component ability profile.

    Attributes:
        phon: Phonology theta.
        morph: Morphology theta.
        lex: Lexical theta.
        synt: Syntactic theta.
        prag: Pragmatic theta.
        global_theta: Overall theta.
    """

    model_config = ConfigDict(frozen=True)

    phon: float = 0.0
    morph: float = 0.0
    lex: float = 0.0
    synt: float = 0.0
    prag: float = 0.0
    global_theta: float = 0.0

    @model_validator(mode="after")
    def _validate_bounds(self) -> "ComponentThetaProfile":
        lower, upper = REPORTING_BOUNDS
        for name, value in self.model_dump().items():
            if not np.isfinite(value) or not lower <= value <= upper:
                raise InvalidParameterError(
                    f"{name}={value} outside [{lower}, {upper}]"
                )
        return self

    def theta(self, component: ComponentCode) -> float:
        """Theta of one component."""
        value: float = getattr(self, component.value.lower())
        return value

    def as_dict(self) -> dict[ComponentCode, float]:
        """Component thetas keyed by code, in canonical order."""
        return {component: self.theta(component) for component in COMPONENTS}

    def with_deltas(
        self,
        deltas: Mapping[ComponentCode, float],
        global_delta: float = 0.0,
    ) -> Self:
        """
        Copy with deltas applied, each result clipped to [-3, 3].

        Args:
            deltas: Theta change per component; missing components are
                left unchanged.
            global_delta: Change to the global theta.

        Returns:
            Updated profile.
        """
        update = {
            component.value.lower(): clip_to_bounds(
                self.theta(component) + delta, REPORTING_BOUNDS
            )
            for component, delta in deltas.items()
        }
        update["global_theta"] = clip_to_bounds(
            self.global_theta + global_delta, REPORTING_BOUNDS
        )
        return self.model_copy(update=update)

    @classmethod
    def from_mapping(
        cls,
        thetas: Mapping[ComponentCode, float],
        global_theta: float = 0.0,
    ) -> Self:
        """Build a profile from per-component thetas; absent ones are 0."""
        return cls(
            **{
                component.value.lower(): float(thetas.get(component, 0.0))
                for component in COMPONENTS
            },
            global_theta=global_theta,
        )

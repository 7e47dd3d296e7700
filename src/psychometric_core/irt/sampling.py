"""
Response simulation for dichotomous IRT models.

This module draws abilities and item parameters and samples responses
from them. It is the only source of randomness in the package: every
function takes an explicit numpy Generator.

Simulation settings can be loaded from YAML with OmegaConf, using
SimulationConfig as the structured schema.
"""

from dataclasses import dataclass
from pathlib import Path

import numpy as np
from numpy.random import Generator
from numpy.typing import NDArray
from omegaconf import OmegaConf

from psychometric_core.core.constants import MISSING_VALUE
from psychometric_core.core.data_models import ResponseMatrix
from psychometric_core.core.utils import get_rng
from psychometric_core.errors import InvalidParameterError
from psychometric_core.irt.parameters import ItemParameter
from psychometric_core.irt.response_models import ModelKind


@dataclass
class SimulationConfig:
    """Settings for a simulated calibration dataset.

    Attributes:
        n_respondents: Number of simulated respondents.
        n_items: Number of simulated items.
        model: Logistic model of the items ("1pl", "2pl" or "3pl").
        ability_mean: Mean of the ability distribution.
        ability_sd: Standard deviation of the ability distribution.
        discrimination_low: Lower bound of the uniform a distribution.
        discrimination_high: Upper bound of the uniform a distribution.
        difficulty_low: Lower bound of the uniform b distribution.
        difficulty_high: Upper bound of the uniform b distribution.
        guessing: Fixed c for 3PL items.
        missing_rate: Probability that a response is not administered.
        seed: Random seed.
    """

    n_respondents: int = 1000
    n_items: int = 20
    model: str = "2pl"
    ability_mean: float = 0.0
    ability_sd: float = 1.0
    discrimination_low: float = 0.8
    discrimination_high: float = 2.0
    difficulty_low: float = -2.0
    difficulty_high: float = 2.0
    guessing: float = 0.2
    missing_rate: float = 0.0
    seed: int = 42

    def __post_init__(self) -> None:
        if self.n_respondents < 1 or self.n_items < 1:
            raise InvalidParameterError(
                "n_respondents and n_items must be positive"
            )
        if self.model not in {kind.value for kind in ModelKind}:
            raise InvalidParameterError(f"Unknown model: {self.model}")
        if not self.ability_sd > 0:
            raise InvalidParameterError("ability_sd must be positive")
        if not 0.0 <= self.missing_rate < 1.0:
            raise InvalidParameterError("missing_rate must be in [0, 1)")


@dataclass(frozen=True)
class SimulatedDataset:
    """Responses together with the parameters that generated them."""

    responses: ResponseMatrix
    items: list[ItemParameter]
    abilities: NDArray[np.float64]


def load_simulation_config(yaml_path: Path | None = None) -> SimulationConfig:
    """Load simulation settings, overriding defaults from YAML if given.

    Args:
        yaml_path: Path to YAML config file

    Returns:
        Validated SimulationConfig

    Raises:
        FileNotFoundError: If yaml_path doesn't exist
    """
    schema = OmegaConf.structured(SimulationConfig)

    if yaml_path is not None:
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        user_config = OmegaConf.load(yaml_path)
        config = OmegaConf.merge(schema, user_config)
    else:
        config = schema

    result = OmegaConf.to_object(config)
    assert isinstance(result, SimulationConfig)

    return result


def sample_abilities(
    n_respondents: int,
    rng: Generator | None = None,
    mean: float = 0.0,
    sd: float = 1.0,
) -> NDArray[np.float64]:
    """Draw abilities from N(mean, sd^2)."""
    if rng is None:
        rng = get_rng()
    abilities: NDArray[np.float64] = rng.normal(mean, sd, size=n_respondents)
    return abilities


def sample_item_parameters(
    config: SimulationConfig, rng: Generator | None = None
) -> list[ItemParameter]:
    """
    Draw item parameters from uniform distributions.

    Args:
        config: Simulation settings.
        rng: Random number generator.

    Returns:
        One ItemParameter per simulated item, ids "item_<idx>".
    """
    if rng is None:
        rng = get_rng()

    model = ModelKind(config.model)
    a = rng.uniform(
        config.discrimination_low, config.discrimination_high, config.n_items
    )
    b = rng.uniform(
        config.difficulty_low, config.difficulty_high, config.n_items
    )

    items = []
    for idx in range(config.n_items):
        items.append(
            ItemParameter(
                item_id=f"item_{idx}",
                a=1.0 if model == ModelKind.ONE_PL else float(a[idx]),
                b=float(b[idx]),
                c=config.guessing if model == ModelKind.THREE_PL else 0.0,
                model=model,
            )
        )
    return items


def simulate_responses(
    items: list[ItemParameter],
    abilities: NDArray[np.float64],
    rng: Generator | None = None,
    missing_rate: float = 0.0,
) -> ResponseMatrix:
    """
    Sample dichotomous responses for all respondents and items.

    Args:
        items: Item parameters, one per column.
        abilities: Array of shape (n_respondents,) with ability values.
        rng: Random number generator.
        missing_rate: Probability that each response is set to
            MISSING_VALUE.

    Returns:
        ResponseMatrix of shape (n_respondents, n_items).
    """
    if rng is None:
        rng = get_rng()

    abilities = np.asarray(abilities, dtype=np.float64)
    n_respondents = len(abilities)

    responses = np.empty((n_respondents, len(items)), dtype=np.int8)
    for j, item in enumerate(items):
        probs = item.probability(abilities)
        u = rng.random(n_respondents)
        responses[:, j] = (u < probs).astype(np.int8)

    if missing_rate > 0:
        missing = rng.random(responses.shape) < missing_rate
        responses[missing] = MISSING_VALUE

    return ResponseMatrix(responses=responses)


def simulate_dataset(config: SimulationConfig) -> SimulatedDataset:
    """Draw abilities, items and responses for one simulated dataset."""
    rng = get_rng(config.seed)
    abilities = sample_abilities(
        config.n_respondents, rng, config.ability_mean, config.ability_sd
    )
    items = sample_item_parameters(config, rng)
    responses = simulate_responses(items, abilities, rng, config.missing_rate)
    return SimulatedDataset(
        responses=responses, items=items, abilities=abilities
    )

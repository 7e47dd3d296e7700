"""
Tests for response simulation.
"""

from pathlib import Path

import numpy as np
import pytest

from psychometric_core.core.constants import MISSING_VALUE
from psychometric_core.core.utils import get_rng
from psychometric_core.errors import InvalidParameterError
from psychometric_core.irt import (
    ItemParameter,
    ModelKind,
    sample_abilities,
    simulate_responses,
)
from psychometric_core.irt.sampling import (
    SimulationConfig,
    load_simulation_config,
    sample_item_parameters,
    simulate_dataset,
)


class TestSimulateResponses:
    def test_shape_and_codes(self) -> None:
        items = [ItemParameter(item_id=f"q{i}") for i in range(4)]
        abilities = sample_abilities(25, get_rng(0))

        data = simulate_responses(items, abilities, get_rng(1))

        assert data.responses.shape == (25, 4)
        assert set(np.unique(data.responses)) <= {0, 1}

    def test_seed_determinism(self) -> None:
        items = [ItemParameter(item_id=f"q{i}") for i in range(4)]
        abilities = sample_abilities(50, get_rng(0))

        first = simulate_responses(items, abilities, get_rng(3))
        second = simulate_responses(items, abilities, get_rng(3))

        np.testing.assert_array_equal(first.responses, second.responses)

    def test_proportion_tracks_probability(self) -> None:
        item = ItemParameter(item_id="q", a=1.0, b=-1.0)
        abilities = np.zeros(20000)

        data = simulate_responses([item], abilities, get_rng(5))

        expected = float(item.probability(0.0))
        assert data.responses.mean() == pytest.approx(expected, abs=0.02)

    def test_missing_rate(self) -> None:
        items = [ItemParameter(item_id=f"q{i}") for i in range(10)]
        abilities = sample_abilities(1000, get_rng(0))

        data = simulate_responses(
            items, abilities, get_rng(2), missing_rate=0.3
        )

        missing = np.mean(data.responses == MISSING_VALUE)
        assert missing == pytest.approx(0.3, abs=0.02)


class TestSimulationConfig:
    def test_item_parameters_follow_model(self) -> None:
        config = SimulationConfig(n_items=6, model="3pl", guessing=0.25)

        items = sample_item_parameters(config, get_rng(0))

        assert len(items) == 6
        assert all(item.model == ModelKind.THREE_PL for item in items)
        assert all(item.c == 0.25 for item in items)
        assert all(0.8 <= item.a <= 2.0 for item in items)

    def test_one_pl_items(self) -> None:
        items = sample_item_parameters(
            SimulationConfig(n_items=5, model="1pl"), get_rng(0)
        )

        assert all(item.a == 1.0 and item.c == 0.0 for item in items)

    def test_invalid_settings(self) -> None:
        with pytest.raises(InvalidParameterError):
            SimulationConfig(model="4pl")
        with pytest.raises(InvalidParameterError):
            SimulationConfig(missing_rate=1.0)

    def test_dataset_is_reproducible(self) -> None:
        config = SimulationConfig(n_respondents=40, n_items=5, seed=11)

        first = simulate_dataset(config)
        second = simulate_dataset(config)

        np.testing.assert_array_equal(
            first.responses.responses, second.responses.responses
        )
        assert first.items == second.items
        assert first.abilities.shape == (40,)


class TestLoadSimulationConfig:
    def test_defaults_without_file(self) -> None:
        config = load_simulation_config()

        assert config == SimulationConfig()

    def test_yaml_overrides(self, tmp_path: Path) -> None:
        path = tmp_path / "simulation.yaml"
        path.write_text("n_respondents: 250\nmodel: 1pl\nseed: 3\n")

        config = load_simulation_config(path)

        assert config.n_respondents == 250
        assert config.model == "1pl"
        assert config.seed == 3
        assert config.n_items == SimulationConfig().n_items

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_simulation_config(tmp_path / "absent.yaml")

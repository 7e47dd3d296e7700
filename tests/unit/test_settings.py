"""
Tests for environment-driven settings.
"""

import pytest

from psychometric_core.errors import InvalidParameterError
from psychometric_core.irt.estimation.config import (
    EstimationConfig,
    MIRTConfig,
    QuadratureConfig,
)
from psychometric_core.settings import EngineSettings


class TestEngineSettings:
    def test_defaults(self) -> None:
        settings = EngineSettings()

        assert settings.quadrature_points == 21
        assert settings.min_items == 10
        assert settings.mirt_learning_rate == 0.1

    def test_environment_override(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Variables with the PSYCHOMETRIC_ prefix override defaults."""
        monkeypatch.setenv("PSYCHOMETRIC_QUADRATURE_POINTS", "41")
        monkeypatch.setenv("PSYCHOMETRIC_EM_TOLERANCE", "0.01")

        settings = EngineSettings()

        assert settings.quadrature_points == 41
        assert settings.em_tolerance == 0.01

    def test_config_from_settings(self) -> None:
        settings = EngineSettings(
            quadrature_points=11, prior_sd=2.0, min_respondents=50
        )

        config = EstimationConfig.from_settings(settings)

        assert config.quadrature.n_points == 11
        assert config.quadrature.std == 2.0
        assert config.density.min_respondents == 50
        assert config.model_version


class TestConfigValidation:
    def test_unsupported_quadrature_points(self) -> None:
        with pytest.raises(InvalidParameterError):
            QuadratureConfig(n_points=7)

    def test_non_positive_prior_sd(self) -> None:
        with pytest.raises(InvalidParameterError):
            QuadratureConfig(std=0.0)

    def test_learning_rate_must_keep_updates_bounded(self) -> None:
        with pytest.raises(InvalidParameterError):
            MIRTConfig(learning_rate=3.5)

"""
Tests for the 1PL / 2PL / 3PL response models.
"""

import numpy as np

from psychometric_core.irt.response_models import (
    ModelKind,
    get_response_model,
)

THETA = np.linspace(-4.0, 4.0, 81)


class TestProbability:
    def test_midpoint_at_difficulty(self) -> None:
        """P = 0.5 when theta equals b and there is no guessing."""
        model = get_response_model(ModelKind.TWO_PL)

        np.testing.assert_allclose(
            model.probability(0.0, a=1.5, b=0.0), 0.5
        )

    def test_monotone_increasing(self) -> None:
        for kind in ModelKind:
            p = get_response_model(kind).probability(
                THETA, a=1.2, b=0.3, c=0.2
            )
            assert np.all(np.diff(p) > 0)

    def test_three_pl_lower_asymptote(self) -> None:
        """3PL probabilities stay strictly between c and 1."""
        p = get_response_model(ModelKind.THREE_PL).probability(
            np.array([-50.0, 50.0]), a=2.0, b=0.0, c=0.25
        )

        assert np.all(p > 0.25)
        assert np.all(p < 1.0)

    def test_one_pl_ignores_discrimination(self) -> None:
        model = get_response_model(ModelKind.ONE_PL)

        np.testing.assert_allclose(
            model.probability(THETA, a=2.5, b=0.5),
            model.probability(THETA, a=1.0, b=0.5),
        )

    def test_two_pl_ignores_guessing(self) -> None:
        model = get_response_model(ModelKind.TWO_PL)

        np.testing.assert_allclose(
            model.probability(THETA, a=1.0, b=0.0, c=0.3),
            model.probability(THETA, a=1.0, b=0.0, c=0.0),
        )


class TestDerivatives:
    def test_first_derivative_matches_numerical(self) -> None:
        model = get_response_model(ModelKind.THREE_PL)
        eps = 1e-6

        analytical = model.first_derivative(THETA, a=1.4, b=-0.5, c=0.2)
        numerical = (
            model.probability(THETA + eps, a=1.4, b=-0.5, c=0.2)
            - model.probability(THETA - eps, a=1.4, b=-0.5, c=0.2)
        ) / (2 * eps)

        np.testing.assert_allclose(analytical, numerical, atol=1e-7)

    def test_second_derivative_matches_numerical(self) -> None:
        model = get_response_model(ModelKind.TWO_PL)
        eps = 1e-5

        analytical = model.second_derivative(THETA, a=1.4, b=0.5)
        numerical = (
            model.first_derivative(THETA + eps, a=1.4, b=0.5)
            - model.first_derivative(THETA - eps, a=1.4, b=0.5)
        ) / (2 * eps)

        np.testing.assert_allclose(analytical, numerical, atol=1e-6)

    def test_two_pl_information(self) -> None:
        """Without guessing I(theta) = a^2 P (1 - P)."""
        model = get_response_model(ModelKind.TWO_PL)
        p = model.probability(THETA, a=1.7, b=0.2)

        np.testing.assert_allclose(
            model.information(THETA, a=1.7, b=0.2),
            1.7**2 * p * (1 - p),
            rtol=1e-10,
        )

    def test_information_peaks_at_difficulty(self) -> None:
        model = get_response_model(ModelKind.TWO_PL)
        info = model.information(THETA, a=1.0, b=1.0)

        np.testing.assert_allclose(THETA[np.argmax(info)], 1.0)

"""
Tests for calibration starting values.
"""

import numpy as np
import pytest

from psychometric_core.core.data_models import ResponseMatrix
from psychometric_core.irt import ModelKind
from psychometric_core.irt.estimation.starting_values import (
    compute_proportion_correct,
    compute_starting_values,
    initial_difficulty,
)


@pytest.fixture
def data() -> ResponseMatrix:
    return ResponseMatrix.from_booleans(
        [
            [True, True, False],
            [True, False, False],
            [True, True, None],
            [False, True, False],
        ]
    )


class TestProportionCorrect:
    def test_smoothed(self, data: ResponseMatrix) -> None:
        """(3 + 0.5) / (4 + 1)"""
        assert compute_proportion_correct(data, 0) == pytest.approx(0.7)

    def test_missing_responses_ignored(self, data: ResponseMatrix) -> None:
        """(0 + 0.5) / (3 + 1)"""
        assert compute_proportion_correct(data, 2) == pytest.approx(0.125)

    def test_unanswered_item(self) -> None:
        data = ResponseMatrix.from_booleans([[None], [None]])

        assert compute_proportion_correct(data, 0) == 0.5


class TestInitialDifficulty:
    def test_easy_items_are_negative(self) -> None:
        assert initial_difficulty(0.8) < 0 < initial_difficulty(0.2)

    def test_midpoint(self) -> None:
        assert initial_difficulty(0.5) == pytest.approx(0.0)

    def test_guessing_correction(self) -> None:
        """With c = 0.2, p = 0.6 is halfway between chance and 1."""
        assert initial_difficulty(0.6, guessing=0.2) == pytest.approx(0.0)

    def test_clipped(self) -> None:
        assert -4.0 <= initial_difficulty(1.0) <= 4.0
        assert -4.0 <= initial_difficulty(0.0) <= 4.0


class TestStartingValues:
    def test_one_item_per_column(self, data: ResponseMatrix) -> None:
        params = compute_starting_values(data)

        assert [p.item_id for p in params] == ["item_0", "item_1", "item_2"]
        assert all(p.a == 1.0 for p in params)
        assert params[0].b < params[2].b

    def test_three_pl_keeps_guessing(self, data: ResponseMatrix) -> None:
        params = compute_starting_values(
            data, model=ModelKind.THREE_PL, guessing=0.2
        )

        assert all(p.c == 0.2 for p in params)

    def test_custom_ids(self, data: ResponseMatrix) -> None:
        params = compute_starting_values(data, item_ids=["x", "y", "z"])

        assert [p.item_id for p in params] == ["x", "y", "z"]

"""
Tests for item parameter validation.
"""

import pytest

from psychometric_core.errors import InvalidParameterError
from psychometric_core.irt import ItemParameter, ModelKind


class TestItemParameterValidation:
    def test_valid_item(self) -> None:
        item = ItemParameter(item_id="q1", a=1.2, b=-0.5)

        assert item.model == ModelKind.TWO_PL
        assert item.c == 0.0

    @pytest.mark.parametrize(
        "field,value",
        [("a", 0.1), ("a", 3.5), ("b", -4.5), ("b", 4.5)],
    )
    def test_out_of_range_rejected(self, field: str, value: float) -> None:
        """Out-of-range parameters are rejected, never clamped."""
        with pytest.raises(InvalidParameterError):
            ItemParameter(item_id="q1", **{field: value})

    def test_non_finite_rejected(self) -> None:
        with pytest.raises(InvalidParameterError):
            ItemParameter(item_id="q1", b=float("nan"))

    def test_guessing_requires_three_pl(self) -> None:
        with pytest.raises(InvalidParameterError):
            ItemParameter(item_id="q1", c=0.2, model=ModelKind.TWO_PL)

        item = ItemParameter(item_id="q1", c=0.2, model=ModelKind.THREE_PL)
        assert item.c == 0.2

    def test_guessing_upper_bound(self) -> None:
        with pytest.raises(InvalidParameterError):
            ItemParameter(item_id="q1", c=0.6, model=ModelKind.THREE_PL)

    def test_one_pl_fixes_discrimination(self) -> None:
        with pytest.raises(InvalidParameterError):
            ItemParameter(item_id="q1", a=1.5, model=ModelKind.ONE_PL)


class TestItemParameterHelpers:
    def test_create_default(self) -> None:
        item = ItemParameter.create_default("q1")

        assert (item.a, item.b, item.c) == (1.0, 0.0, 0.0)

    def test_create_default_guessing_only_for_three_pl(self) -> None:
        two_pl = ItemParameter.create_default("q1", guessing=0.2)
        three_pl = ItemParameter.create_default(
            "q2", model=ModelKind.THREE_PL, guessing=0.2
        )

        assert two_pl.c == 0.0
        assert three_pl.c == 0.2

    def test_with_estimates_keeps_one_pl_discrimination(self) -> None:
        item = ItemParameter(item_id="q1", model=ModelKind.ONE_PL)

        updated = item.with_estimates(a=2.0, b=0.7)

        assert updated.a == 1.0
        assert updated.b == 0.7
        assert item.b == 0.0

    def test_information_delegates_to_model(self) -> None:
        item = ItemParameter(item_id="q1", a=2.0, b=0.0)

        assert float(item.information(0.0)) == pytest.approx(1.0)

"""
Tests for adaptive item selection.
"""

import numpy as np
import pytest

from psychometric_core.irt import (
    ItemParameter,
    ThetaEstimate,
    rank_items,
    select_next_item,
)
from psychometric_core.irt.estimation.config import default_config
from psychometric_core.irt.estimation.enums import (
    EstimationMethod,
    SelectionStrategy,
)
from psychometric_core.irt.selection import (
    fisher_information,
    kl_information,
    resolve_strategy,
)


def make_item(item_id: str, a: float = 1.0, b: float = 0.0) -> ItemParameter:
    return ItemParameter(item_id=item_id, a=a, b=b)


BANK = [
    make_item(f"item_{idx}", b=b)
    for idx, b in enumerate([-2.0, -1.0, 0.0, 1.0, 2.0])
]


class TestInformation:
    def test_fisher_peaks_at_difficulty(self) -> None:
        item = make_item("q", a=1.5, b=0.5)

        assert fisher_information(item, 0.5) == pytest.approx(1.5**2 / 4)
        assert fisher_information(item, 0.5) > fisher_information(item, 1.5)

    def test_kl_non_negative(self) -> None:
        for item in BANK:
            assert kl_information(item, 0.3, 0.8) >= 0.0

    def test_kl_grows_with_uncertainty(self) -> None:
        item = make_item("q", b=0.0)

        assert kl_information(item, 0.0, 1.0) > kl_information(item, 0.0, 0.2)

    def test_kl_handles_degenerate_se(self) -> None:
        item = make_item("q")

        assert np.isfinite(kl_information(item, 0.0, 0.0))
        assert kl_information(item, 0.0, float("inf")) == pytest.approx(
            kl_information(item, 0.0, 1.0)
        )


class TestStrategy:
    def test_auto_switches_on_standard_error(self) -> None:
        config = default_config()

        assert (
            resolve_strategy("auto", 0.9, config) == SelectionStrategy.KL
        )
        assert (
            resolve_strategy("auto", 0.3, config) == SelectionStrategy.FISHER
        )

    def test_explicit_strategy_wins(self) -> None:
        assert (
            resolve_strategy("kl", 0.01, default_config())
            == SelectionStrategy.KL
        )


class TestRankItems:
    def test_fisher_prefers_item_at_theta(self) -> None:
        ranked = rank_items(1.0, BANK)

        assert ranked[0].item.item_id == "item_3"
        assert [r.score for r in ranked] == sorted(
            (r.score for r in ranked), reverse=True
        )

    def test_kl_prefers_item_near_theta(self) -> None:
        estimate = ThetaEstimate(
            theta=-1.0, se=0.9, method=EstimationMethod.EAP
        )

        best = select_next_item(estimate, BANK, strategy="kl")

        assert best is not None
        assert best.item_id == "item_1"

    def test_ties_broken_by_usage_then_order(self) -> None:
        """Equally informative items fall back to exposure, then input."""
        twins = [make_item("a"), make_item("b"), make_item("c")]

        by_order = rank_items(0.0, twins)
        by_usage = rank_items(0.0, twins, usage_counts={"a": 3, "b": 1})

        assert [r.item.item_id for r in by_order] == ["a", "b", "c"]
        assert [r.item.item_id for r in by_usage] == ["c", "b", "a"]

    def test_symmetric_items_tie(self) -> None:
        """Items at equal distance from theta are ranked by position."""
        ranked = rank_items(0.0, [BANK[3], BANK[1]])

        assert [r.item.item_id for r in ranked] == ["item_3", "item_1"]
        assert [r.position for r in ranked] == [0, 1]

    def test_exclude_ids(self) -> None:
        best = select_next_item(1.0, BANK, exclude_ids={"item_3"})

        assert best is not None
        assert best.item_id in {"item_2", "item_4"}

    def test_empty_pool(self) -> None:
        assert select_next_item(0.0, []) is None
        assert (
            select_next_item(0.0, BANK, exclude_ids=[i.item_id for i in BANK])
            is None
        )

    def test_deterministic(self) -> None:
        first = rank_items(0.4, BANK, strategy="auto")
        second = rank_items(0.4, BANK, strategy="auto")

        assert first == second

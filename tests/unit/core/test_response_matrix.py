"""
Tests for the response matrix container.
"""

import numpy as np
import pytest

from psychometric_core.core.constants import MISSING_VALUE
from psychometric_core.core.data_models import ResponseMatrix
from psychometric_core.errors import InvalidParameterError


class TestResponseMatrix:
    def test_shape_properties(self) -> None:
        data = ResponseMatrix(responses=np.zeros((4, 3), dtype=np.int8))

        assert data.n_respondents == 4
        assert data.n_items == 3

    def test_rejects_non_2d(self) -> None:
        with pytest.raises(InvalidParameterError):
            ResponseMatrix(responses=np.zeros(5, dtype=np.int8))

    def test_rejects_unknown_codes(self) -> None:
        """Only 0, 1 and the missing code are valid responses."""
        with pytest.raises(InvalidParameterError):
            ResponseMatrix(responses=np.array([[0, 2]], dtype=np.int8))

    def test_from_booleans_marks_missing(self) -> None:
        data = ResponseMatrix.from_booleans(
            [[True, False, None], [None, True, True]]
        )

        np.testing.assert_array_equal(
            data.responses,
            [[1, 0, MISSING_VALUE], [MISSING_VALUE, 1, 1]],
        )
        np.testing.assert_array_equal(data.n_valid_per_item(), [1, 2, 1])

    def test_masks_are_consistent(self) -> None:
        data = ResponseMatrix.from_booleans([[True, None], [False, True]])

        np.testing.assert_array_equal(
            data.valid_mask, ~data.missing_mask
        )
        assert data.correct_mask.sum() == 2

    def test_item_response_counts_ignore_missing(self) -> None:
        data = ResponseMatrix.from_booleans(
            [[True], [False], [None], [True]]
        )

        np.testing.assert_array_equal(data.item_response_counts(0), [1, 2])

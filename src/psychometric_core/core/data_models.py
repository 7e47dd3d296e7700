"""
Data models for IRT calibration input.

This module defines:
- ResponseMatrix: dichotomous respondent x item responses with missingness
"""

from dataclasses import dataclass

import numpy as np
from numpy.typing import NDArray

from psychometric_core.core.constants import MISSING_VALUE
from psychometric_core.errors import InvalidParameterError


@dataclass(frozen=True)
class ResponseMatrix:
    """
    Dichotomous response data for calibration.

    Attributes:
        responses: Array of shape (n_respondents, n_items) with 1 (correct),
            0 (incorrect) or MISSING_VALUE (not administered).
    """

    responses: NDArray[np.int8]

    def __post_init__(self) -> None:
        """Validate response matrix."""
        if self.responses.ndim != 2:
            raise InvalidParameterError(
                f"responses must be 2D, got shape {self.responses.shape}"
            )
        allowed = np.isin(self.responses, (0, 1, MISSING_VALUE))
        if not allowed.all():
            bad = self.responses[~allowed]
            raise InvalidParameterError(
                f"Response values must be 0, 1 or {MISSING_VALUE}, "
                f"got {bad[0]}"
            )

    @classmethod
    def from_booleans(
        cls, rows: list[list[bool | None]]
    ) -> "ResponseMatrix":
        """
        Build from nested lists of booleans, with None marking missing.

        Args:
            rows: One list per respondent, one entry per item.

        Returns:
            ResponseMatrix with the same shape.
        """
        if not rows:
            return cls(responses=np.zeros((0, 0), dtype=np.int8))
        coded = [
            [MISSING_VALUE if r is None else int(r) for r in row]
            for row in rows
        ]
        return cls(responses=np.array(coded, dtype=np.int8))

    @property
    def n_respondents(self) -> int:
        """Number of respondents (rows)."""
        return self.responses.shape[0]

    @property
    def n_items(self) -> int:
        """Number of items (columns)."""
        return self.responses.shape[1]

    @property
    def missing_mask(self) -> NDArray[np.bool_]:
        """Boolean mask where True indicates missing response."""
        result: NDArray[np.bool_] = self.responses == MISSING_VALUE
        return result

    @property
    def valid_mask(self) -> NDArray[np.bool_]:
        """Boolean mask where True indicates an observed response."""
        result: NDArray[np.bool_] = self.responses != MISSING_VALUE
        return result

    @property
    def correct_mask(self) -> NDArray[np.bool_]:
        """Boolean mask where True indicates a correct response."""
        result: NDArray[np.bool_] = self.responses == 1
        return result

    def item_response_counts(self, item_idx: int) -> NDArray[np.int64]:
        """
        Count observed responses for an item.

        Args:
            item_idx: Index of the item.

        Returns:
            Array [n_incorrect, n_correct].
        """
        item_responses = self.responses[:, item_idx]
        valid = item_responses[item_responses != MISSING_VALUE]
        counts = np.bincount(valid.astype(np.int64), minlength=2)
        return counts.astype(np.int64)

    def n_valid_per_item(self) -> NDArray[np.int64]:
        """Number of observed responses per item, shape (n_items,)."""
        result: NDArray[np.int64] = self.valid_mask.sum(axis=0).astype(
            np.int64
        )
        return result

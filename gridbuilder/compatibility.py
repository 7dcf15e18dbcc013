"""Pairwise compatibility checks for seating."""

from collections.abc import Iterable

import numpy as np

from gridbuilder.history import PairHistoryIndex
from gridbuilder.models import PairKey, pair_key

NEVER_MET = -1


class CompatibilityOracle:
    """
    Decide whether two attendees may share a house.

    A pair on the never-match list is never compatible, whatever the
    threshold. Otherwise a pair is incompatible only when they met fewer
    than `threshold` months ago; pairs that never met are always compatible.
    """

    def __init__(
        self,
        history: PairHistoryIndex,
        never_match: Iterable[PairKey],
        threshold: int,
    ):
        self.history = history
        self.never_match: set[PairKey] = set(never_match)
        self.threshold = threshold

        self._index: dict[str, int] = {}
        self._months = np.zeros((0, 0), dtype=np.int64)
        self._never = np.zeros((0, 0), dtype=bool)
        self._constrained = np.zeros((0, 0), dtype=bool)

    def narrow_to(self, codes: Iterable[str]) -> None:
        """
        Pre-compute lookup tables for tonight's attendees.

        Checks between two narrowed codes become array lookups; any other
        pair falls back to the history index.
        """
        codes = list(dict.fromkeys(codes))
        self._index = {code: i for i, code in enumerate(codes)}
        n = len(codes)

        months = np.full((n, n), NEVER_MET, dtype=np.int64)
        never = np.zeros((n, n), dtype=bool)
        for key, value in self.history.pairs().items():
            idx = [self._index.get(c) for c in key]
            if len(idx) == 2 and None not in idx:
                months[idx[0], idx[1]] = months[idx[1], idx[0]] = value
        for key in self.never_match:
            idx = [self._index.get(c) for c in key]
            if len(idx) == 2 and None not in idx:
                never[idx[0], idx[1]] = never[idx[1], idx[0]] = True

        self._months = months
        self._never = never
        self._constrained = never | ((months != NEVER_MET) & (months < self.threshold))

    def is_never_match(self, code_a: str, code_b: str) -> bool:
        return pair_key(code_a, code_b) in self.never_match

    def is_compatible(self, code_a: str, code_b: str, threshold: int | None = None) -> bool:
        i = self._index.get(code_a)
        j = self._index.get(code_b)
        if i is not None and j is not None:
            if threshold is None or threshold == self.threshold:
                return not self._constrained[i, j]
            if self._never[i, j]:
                return False
            months = self._months[i, j]
            return bool(months == NEVER_MET or months >= threshold)

        if self.is_never_match(code_a, code_b):
            return False
        months = self.history.months_apart(code_a, code_b)
        if months is None:
            return True
        return months >= (self.threshold if threshold is None else threshold)

    def fits_members(self, code: str, members: Iterable[str], threshold: int | None = None) -> bool:
        """Check `code` against every member of a house."""
        return all(self.is_compatible(code, m, threshold) for m in members if m != code)

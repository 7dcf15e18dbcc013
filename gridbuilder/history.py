"""Pair history index built from the connections ledger."""

from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Iterable
from pathlib import Path
from typing import TYPE_CHECKING

from gridbuilder.models import PairKey, format_pair, pair_key, split_pair
from gridbuilder.parser import parse_ledger_csv

if TYPE_CHECKING:
    from gridbuilder.ledger import LedgerEntry

logger = logging.getLogger(__name__)

CACHE_VERSION = 1


class PairHistoryIndex:
    """Months since each pair last shared a house, and prior pairings per member."""

    def __init__(
        self,
        months: dict[PairKey, int] | None = None,
        counts: dict[str, int] | None = None,
    ):
        self._months: dict[PairKey, int] = dict(months or {})
        self._counts: dict[str, int] = dict(counts or {})

    @classmethod
    def from_ledger(cls, entries: Iterable[LedgerEntry]) -> PairHistoryIndex:
        """
        Build the index from ledger entries.

        The ledger holds one row per co-seating in each key order. Only the
        most recent meeting (fewest months apart) is kept per pair. Each row
        counts once towards the prior pairings of the first code in its key.
        """
        months: dict[PairKey, int] = {}
        counts: Counter[str] = Counter()
        for entry in entries:
            first, second = split_pair(entry.pair)
            key = pair_key(first, second)
            if key not in months or entry.months_apart < months[key]:
                months[key] = entry.months_apart
            counts[first] += 1
        return cls(months, dict(counts))

    def months_apart(self, code_a: str, code_b: str) -> int | None:
        """Months since the pair last met, or None if they never have."""
        return self._months.get(pair_key(code_a, code_b))

    def connection_count(self, code: str) -> int:
        return self._counts.get(code, 0)

    def pairs(self) -> dict[PairKey, int]:
        return dict(self._months)

    def __len__(self) -> int:
        return len(self._months)

    def to_json(self) -> dict:
        return {
            "version": CACHE_VERSION,
            "months": {format_pair(k): v for k, v in sorted(self._months.items(), key=lambda kv: format_pair(kv[0]))},
            "counts": dict(sorted(self._counts.items())),
        }

    @classmethod
    def from_json(cls, data: dict) -> PairHistoryIndex:
        if data.get("version") != CACHE_VERSION:
            raise ValueError(f"Unsupported cache version: {data.get('version')!r}")
        months = {pair_key(*split_pair(k)): int(v) for k, v in data["months"].items()}
        counts = {str(k): int(v) for k, v in data["counts"].items()}
        return cls(months, counts)


def save_index_cache(index: PairHistoryIndex, cache_path: Path) -> None:
    with cache_path.open("w", encoding="utf-8") as f:
        json.dump(index.to_json(), f)


def invalidate_index_cache(cache_path: Path | None) -> None:
    """Drop the cached index so the next build reads the ledger again."""
    if cache_path is not None and cache_path.exists():
        cache_path.unlink()
        logger.info("Removed pair history cache %s", cache_path)


def load_or_build_index(ledger_path: Path, cache_path: Path | None = None) -> PairHistoryIndex:
    """
    Return the pair history index, reusing the cache file when it is usable.

    A missing, older-than-ledger, unreadable or corrupt cache is rebuilt from
    the ledger and written back.
    """
    if cache_path is not None and cache_path.exists():
        if ledger_path.exists() and cache_path.stat().st_mtime < ledger_path.stat().st_mtime:
            logger.info("Pair history cache is older than the ledger, rebuilding")
        else:
            try:
                with cache_path.open(encoding="utf-8") as f:
                    return PairHistoryIndex.from_json(json.load(f))
            except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
                logger.warning("Error reading cached pair history (%s), rebuilding", e)

    if not ledger_path.exists():
        logger.warning("Connections ledger %s not found, treating every pair as never met", ledger_path)
    index = PairHistoryIndex.from_ledger(parse_ledger_csv(ledger_path))
    logger.info("Built pair history index: %d pairs", len(index))
    if cache_path is not None:
        try:
            save_index_cache(index, cache_path)
        except OSError as e:
            logger.warning("Could not write pair history cache %s: %s", cache_path, e)
    return index

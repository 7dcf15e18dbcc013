import datetime
import json
import os

from gridbuilder.history import (
    PairHistoryIndex,
    invalidate_index_cache,
    load_or_build_index,
    save_index_cache,
)
from gridbuilder.ledger import LedgerEntry
from gridbuilder.parser import write_ledger_csv


def _entry(pair: str, months: int) -> LedgerEntry:
    first, second = pair.split("-")
    return LedgerEntry(pair, first, second, 2024, datetime.date(2024, 1, 1), "", months)


LEDGER = [
    _entry("A-B", 6),
    _entry("A-B", 30),
    _entry("B-A", 6),
    _entry("B-A", 30),
    _entry("A-C", 18),
    _entry("C-A", 18),
]


def test_keeps_most_recent_meeting_per_pair():
    index = PairHistoryIndex.from_ledger(LEDGER)

    assert index.months_apart("A", "B") == 6
    assert index.months_apart("B", "A") == 6
    assert index.months_apart("C", "A") == 18
    assert index.months_apart("B", "C") is None
    assert len(index) == 2


def test_minimum_wins_even_when_ledger_is_unsorted():
    index = PairHistoryIndex.from_ledger([_entry("A-B", 30), _entry("B-A", 4)])
    assert index.months_apart("A", "B") == 4


def test_counts_prior_pairings_per_member():
    index = PairHistoryIndex.from_ledger(LEDGER)

    assert index.connection_count("A") == 3
    assert index.connection_count("B") == 2
    assert index.connection_count("C") == 1
    assert index.connection_count("Z") == 0


def test_index_is_read_from_cache(tmp_path):
    ledger = tmp_path / "connections.csv"
    cache = tmp_path / "cache.json"
    write_ledger_csv(ledger, LEDGER)
    save_index_cache(PairHistoryIndex.from_ledger(LEDGER[:1]), cache)

    index = load_or_build_index(ledger, cache)

    # The cache only holds the first row; it is newer than the ledger so it wins
    assert index.months_apart("A", "B") == 6
    assert index.months_apart("A", "C") is None


def test_missing_cache_is_built_and_written(tmp_path):
    ledger = tmp_path / "connections.csv"
    cache = tmp_path / "cache.json"
    write_ledger_csv(ledger, LEDGER)

    index = load_or_build_index(ledger, cache)

    assert index.months_apart("A", "C") == 18
    data = json.loads(cache.read_text())
    assert data["months"] == {"A-B": 6, "A-C": 18}
    assert data["counts"] == {"A": 3, "B": 2, "C": 1}


def test_corrupt_cache_is_rebuilt(tmp_path, caplog):
    ledger = tmp_path / "connections.csv"
    cache = tmp_path / "cache.json"
    write_ledger_csv(ledger, LEDGER)
    cache.write_text('{"version": 1, "months": {"A-B": ')

    index = load_or_build_index(ledger, cache)

    assert index.months_apart("A", "B") == 6
    assert "rebuilding" in caplog.text
    assert PairHistoryIndex.from_json(json.loads(cache.read_text())).months_apart("A", "C") == 18


def test_stale_cache_is_rebuilt(tmp_path):
    ledger = tmp_path / "connections.csv"
    cache = tmp_path / "cache.json"
    save_index_cache(PairHistoryIndex(), cache)
    write_ledger_csv(ledger, LEDGER)
    old = ledger.stat().st_mtime - 60
    os.utime(cache, (old, old))

    index = load_or_build_index(ledger, cache)

    assert index.months_apart("A", "B") == 6


def test_invalidate_removes_cache(tmp_path):
    cache = tmp_path / "cache.json"
    save_index_cache(PairHistoryIndex(), cache)

    invalidate_index_cache(cache)
    invalidate_index_cache(cache)

    assert not cache.exists()


def test_missing_ledger_is_empty_history(tmp_path, caplog):
    index = load_or_build_index(tmp_path / "nothing.csv")

    assert len(index) == 0
    assert "nothing.csv not found" in caplog.text

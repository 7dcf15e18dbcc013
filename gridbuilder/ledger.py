"""Connections ledger: the history of who has shared a house with whom."""

import datetime
import itertools
from dataclasses import dataclass

from gridbuilder.models import PAIR_SEPARATOR, House


@dataclass
class LedgerEntry:
    """One co-seating of two members at a past dinner."""

    pair: str  # "codeA-codeB"; every co-seating is stored in both key orders
    member_1: str
    member_2: str
    year: int
    date: datetime.date
    host_role: str = ""
    months_apart: int = 0


def months_between(later: datetime.date, earlier: datetime.date) -> int:
    """Whole calendar months from `earlier` to `later` (days are ignored)."""
    return later.month - earlier.month + 12 * (later.year - earlier.year)


def refresh_months_apart(entries: list[LedgerEntry], dinner_date: datetime.date) -> None:
    """
    Recompute months apart for every entry relative to the next dinner.

    Sorts the ledger by pair key, then by months apart ascending, so the
    most recent meeting of each pair comes first.
    """
    for entry in entries:
        entry.months_apart = months_between(dinner_date, entry.date)
    entries.sort(key=lambda e: (e.pair, e.months_apart))


def record_houses(
    entries: list[LedgerEntry],
    houses: list[House],
    dinner_date: datetime.date,
) -> int:
    """
    Append a ledger entry, in both key orders, for every pair seated together.

    Pairs that include the host are tagged "Host". Returns the number of
    pairs recorded.
    """
    recorded = 0
    for house in houses:
        if not house.active:
            continue
        for first, second in itertools.combinations(house.members, 2):
            role = "Host" if first == house.host else ""
            for a, b in ((first, second), (second, first)):
                entries.append(
                    LedgerEntry(
                        pair=f"{a}{PAIR_SEPARATOR}{b}",
                        member_1=first,
                        member_2=second,
                        year=dinner_date.year,
                        date=dinner_date,
                        host_role=role,
                    )
                )
            recorded += 1
    return recorded

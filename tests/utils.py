"""Builders and invariant checks shared by the gridbuilder tests."""

from __future__ import annotations

import itertools
from collections.abc import Iterable

from gridbuilder.compatibility import CompatibilityOracle
from gridbuilder.engine import build_houses
from gridbuilder.history import PairHistoryIndex
from gridbuilder.models import Attendee, Controls, House, PairKey, SeatingContext, pair_key


def host(code: str, seats: int, occupancy: int = 1, connections: int = 0, order: float = 0.0) -> Attendee:
    return Attendee(
        code=code,
        party_size=occupancy,
        role="host",
        seated=True,
        seat_capacity=seats,
        self_occupancy=occupancy,
        prior_connections=connections,
        order=order,
    )


def guest(code: str, size: int = 1, seated: bool = False, connections: int = 0, order: float = 0.0) -> Attendee:
    return Attendee(code=code, party_size=size, seated=seated, prior_connections=connections, order=order)


def history_of(months: dict[tuple[str, str], int] | None = None, counts: dict[str, int] | None = None) -> PairHistoryIndex:
    return PairHistoryIndex({pair_key(a, b): m for (a, b), m in (months or {}).items()}, counts)


def never(*pairs: tuple[str, str]) -> set[PairKey]:
    return {pair_key(a, b) for a, b in pairs}


def controls(**overrides) -> Controls:
    overrides.setdefault("time_lapse_threshold", 12)
    return Controls(**overrides)


def make_context(
    hosts: list[Attendee],
    guests: list[Attendee],
    history: PairHistoryIndex | None = None,
    never_match: Iterable[PairKey] = (),
    threshold: int = 12,
) -> SeatingContext:
    """A context with one fresh house per host, nobody but the hosts seated."""
    attendees = {a.code: a for a in [*hosts, *guests]}
    oracle = CompatibilityOracle(history or PairHistoryIndex(), never_match, threshold)
    oracle.narrow_to(attendees)
    return SeatingContext(attendees, build_houses(hosts, attendees, []), oracle, [g.code for g in guests])


def house(context: SeatingContext, host_code: str) -> House:
    return next(h for h in context.houses if h.host == host_code)


def assert_houses_valid(
    houses: list[House],
    attendees: dict[str, Attendee],
    oracle: CompatibilityOracle,
    relaxed: Iterable[str] = (),
) -> None:
    """Capacity, roster size, never-match and (outside relaxed guests) threshold hold in every house."""
    relaxed = set(relaxed)
    for h in houses:
        assert h.occupied_seats == sum(attendees[m].party_size for m in h.members)
        assert h.occupied_seats <= h.capacity
        assert len(h.members) <= 6
        for a, b in itertools.combinations(h.members, 2):
            assert not oracle.is_never_match(a, b), f"{a} and {b} share house {h.house_id}"
            if a not in relaxed and b not in relaxed:
                assert oracle.is_compatible(a, b), f"{a} and {b} met too recently"


def seated_members(houses: list[House]) -> list[str]:
    return [code for h in houses for code in h.guests]

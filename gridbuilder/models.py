"""Data models for gridbuilder."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Literal

from gridbuilder.exceptions import SeatingError

if TYPE_CHECKING:
    from gridbuilder.compatibility import CompatibilityOracle

# Host slot plus guest_1..guest_5 on the grid
MAX_HOUSE_MEMBERS = 6

PAIR_SEPARATOR = "-"

PairKey = frozenset[str]


def pair_key(code_a: str, code_b: str) -> PairKey:
    """Symmetric key for a pair of attendee codes."""
    return frozenset((code_a, code_b))


def split_pair(text: str) -> tuple[str, str]:
    """Split a "codeA-codeB" string into its two codes."""
    parts = [p.strip() for p in str(text).split(PAIR_SEPARATOR)]
    if len(parts) != 2 or not all(parts):
        raise ValueError(f"Not a pair of codes: {text!r}")
    return parts[0], parts[1]


def format_pair(key: PairKey) -> str:
    """Render a pair key as "codeA-codeB" with the codes in sorted order."""
    codes = sorted(key)
    if len(codes) == 1:
        codes = codes * 2
    return PAIR_SEPARATOR.join(codes)


@dataclass
class Attendee:
    """A host or guest coming to the dinner."""

    code: str
    party_size: int = 1
    role: Literal["host", "guest"] = "guest"
    seated: bool = False
    seat_capacity: int = 0  # hosts only: seats their house offers
    self_occupancy: int = 0  # hosts only: seats taken by the host's own party
    prior_connections: int | None = None  # filled from the pair history when absent
    order: float = 0.0  # secondary sort field supplied by the caller

    @property
    def is_host(self) -> bool:
        return self.role == "host"


@dataclass
class House:
    """A seating unit anchored by its host in slot 0."""

    house_id: int
    capacity: int
    members: list[str] = field(default_factory=list)
    occupied_seats: int = 0

    @property
    def host(self) -> str | None:
        return self.members[0] if self.members else None

    @property
    def active(self) -> bool:
        return self.host is not None

    @property
    def guests(self) -> list[str]:
        return self.members[1:]

    @property
    def free_seats(self) -> int:
        return self.capacity - self.occupied_seats

    @property
    def has_free_slot(self) -> bool:
        return len(self.members) < MAX_HOUSE_MEMBERS

    def add(self, code: str, party_size: int) -> None:
        if self.occupied_seats + party_size > self.capacity:
            raise SeatingError(f"House {self.house_id} has no room for {code} (party of {party_size})")
        if not self.has_free_slot:
            raise SeatingError(f"House {self.house_id} already has {MAX_HOUSE_MEMBERS} members")
        self.members.append(code)
        self.occupied_seats += party_size

    def remove(self, code: str, party_size: int) -> None:
        if code == self.host:
            raise SeatingError(f"Cannot remove host {code} from house {self.house_id}")
        self.members.remove(code)
        self.occupied_seats -= party_size

    def copy(self) -> House:
        return replace(self, members=list(self.members))


@dataclass(frozen=True)
class Controls:
    """Control parameters for a grid build."""

    time_lapse_threshold: int
    next_dinner_date: datetime.date | None = None
    throttle_singles: bool = False
    sort_hosts: bool = True
    sort_guests: bool = True
    clear_seated: bool = False
    clear_grid: bool = False
    unseated_options: bool = False
    strategy: Literal["scored", "restart"] = "scored"
    max_attempts: int = 10
    seed: int | None = None
    critical_ceiling: int = 2
    relaxation_steps: tuple[int, ...] = (24, 18, 12, 6, 3, 0)
    relaxation_floor: int = 0


@dataclass
class GridRow:
    """A row of a seating grid as stored between runs."""

    house_id: int | None
    capacity: int | None = None
    occupied_seats: int | None = None
    members: list[str] = field(default_factory=list)


@dataclass
class UnseatedMember:
    """An attendee left without a seat."""

    code: str
    party_size: int


@dataclass
class HouseOption:
    """A house an unseated guest could take with a manual change."""

    house_id: int
    host: str
    free_seats: int
    seat_shortfall: int
    blockers: list[str] = field(default_factory=list)  # members the guest can't sit with


@dataclass
class Assignment:
    """Result of a grid build."""

    houses: list[House]
    guests: list[Attendee]
    residual: list[UnseatedMember]
    phase_residuals: dict[str, int] = field(default_factory=dict)
    relaxed: dict[str, int] = field(default_factory=dict)  # guest code -> threshold used
    options: dict[str, list[HouseOption]] = field(default_factory=dict)

    @property
    def seated_count(self) -> int:
        return sum(1 for g in self.guests if g.seated)


class SeatingContext:
    """In-memory state shared by every phase of a grid build."""

    def __init__(
        self,
        attendees: dict[str, Attendee],
        houses: list[House],
        oracle: CompatibilityOracle,
        guest_order: list[str] | None = None,
    ):
        self.attendees = attendees
        self.houses = houses
        self.oracle = oracle
        # Guests in processing order; residual lists follow this order
        self.guest_order = guest_order or [c for c, a in attendees.items() if not a.is_host]

    def party_size(self, code: str) -> int:
        return self.attendees[code].party_size

    def active_houses(self) -> list[House]:
        return [h for h in self.houses if h.active]

    def house_of(self, code: str) -> House | None:
        for house in self.houses:
            if code in house.members:
                return house
        return None

    def unseated(self) -> list[str]:
        return [c for c in self.guest_order if not self.attendees[c].seated]

    def fits(
        self,
        code: str,
        house: House,
        threshold: int | None = None,
        without: tuple[str, ...] = (),
    ) -> bool:
        """Check whether `code` can join `house` once `without` members have left."""
        if not house.active or house.host in without:
            return False
        remaining = [m for m in house.members if m not in without and m != code]
        if len(remaining) + 1 > MAX_HOUSE_MEMBERS:
            return False
        seats = house.occupied_seats - sum(self.party_size(m) for m in without if m in house.members)
        if seats + self.party_size(code) > house.capacity:
            return False
        return self.oracle.fits_members(code, remaining, threshold)

    def seat(self, code: str, house: House) -> None:
        house.add(code, self.party_size(code))
        self.attendees[code].seated = True

    def unseat(self, code: str, house: House) -> None:
        house.remove(code, self.party_size(code))
        self.attendees[code].seated = False

    def move(self, code: str, source: House, target: House) -> None:
        source.remove(code, self.party_size(code))
        target.add(code, self.party_size(code))

    def copy(self) -> SeatingContext:
        return SeatingContext(
            attendees={c: replace(a) for c, a in self.attendees.items()},
            houses=[h.copy() for h in self.houses],
            oracle=self.oracle,
            guest_order=list(self.guest_order),
        )

    def adopt(self, other: SeatingContext) -> None:
        """Take over the seating state of a trial copy."""
        self.houses[:] = other.houses
        for code, attendee in other.attendees.items():
            self.attendees[code].seated = attendee.seated
        self.guest_order = list(other.guest_order)

    def snapshot(self) -> Assignment:
        guests = [self.attendees[c] for c in self.guest_order]
        residual = [UnseatedMember(code=g.code, party_size=g.party_size) for g in guests if not g.seated]
        return Assignment(houses=self.houses, guests=guests, residual=residual)

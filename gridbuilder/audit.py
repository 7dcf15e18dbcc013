"""Audit of a finished grid, and manual seating options for unseated guests."""

import itertools
import statistics
from dataclasses import dataclass, field

from gridbuilder.compatibility import CompatibilityOracle
from gridbuilder.models import Attendee, House, HouseOption, SeatingContext, UnseatedMember

NEVER_MATCH_WARNING = "NEVER MATCH"
TOO_SOON_WARNING = "TOO SOON"


@dataclass
class PairAudit:
    """Two members seated in the same house."""

    house_id: int
    member_1: str
    member_2: str
    months_apart: int | None  # None = never met
    warning: str = ""


@dataclass
class SeparationStats:
    """Months-apart spread over pairs that have met before."""

    count: int = 0
    minimum: int | None = None
    maximum: int | None = None
    average: float | None = None

    @classmethod
    def of(cls, months: list[int]) -> "SeparationStats":
        if not months:
            return cls()
        return cls(count=len(months), minimum=min(months), maximum=max(months), average=statistics.mean(months))


@dataclass
class AuditReport:
    """Result of auditing a grid against the history and never-match list."""

    threshold: int
    pairs: list[PairAudit] = field(default_factory=list)
    unseated: list[UnseatedMember] = field(default_factory=list)
    overall: SeparationStats = field(default_factory=SeparationStats)
    by_house: dict[int, SeparationStats] = field(default_factory=dict)

    @property
    def never_match_violations(self) -> list[PairAudit]:
        return [p for p in self.pairs if p.warning == NEVER_MATCH_WARNING]

    @property
    def problem_pairs(self) -> list[PairAudit]:
        return [p for p in self.pairs if p.warning == TOO_SOON_WARNING]

    @property
    def never_met(self) -> int:
        return sum(1 for p in self.pairs if p.months_apart is None and not p.warning)

    def sorted_by_separation(self) -> list[PairAudit]:
        """Closest meetings first; never-met pairs last."""
        return sorted(self.pairs, key=lambda p: (p.months_apart is None, p.months_apart or 0))


def audit_grid(
    houses: list[House],
    guests: list[Attendee],
    oracle: CompatibilityOracle,
) -> AuditReport:
    """
    Check every pair seated together.

    Never-match pairs are flagged first; pairs that met more recently than
    the threshold are flagged as too soon. Separation statistics exclude
    never-match and never-met pairs.
    """
    report = AuditReport(threshold=oracle.threshold)
    all_months: list[int] = []

    for house in houses:
        if not house.active:
            continue
        house_months: list[int] = []
        for first, second in itertools.combinations(house.members, 2):
            months = oracle.history.months_apart(first, second)
            warning = ""
            if oracle.is_never_match(first, second):
                warning = NEVER_MATCH_WARNING
            elif months is not None:
                house_months.append(months)
                if months < oracle.threshold:
                    warning = TOO_SOON_WARNING
            report.pairs.append(PairAudit(house.house_id, first, second, months, warning))
        report.by_house[house.house_id] = SeparationStats.of(house_months)
        all_months.extend(house_months)

    report.overall = SeparationStats.of(all_months)
    report.unseated = [UnseatedMember(g.code, g.party_size) for g in guests if not g.seated]
    return report


def unseated_options(context: SeatingContext) -> dict[str, list[HouseOption]]:
    """
    For each unseated guest, the houses whose host they may sit with.

    Each option lists the members blocking the guest and how many seats
    short the house is, fewest obstacles first.
    """
    oracle = context.oracle
    options: dict[str, list[HouseOption]] = {}
    for code in context.unseated():
        party = context.party_size(code)
        found: list[HouseOption] = []
        for house in context.active_houses():
            if not oracle.is_compatible(code, house.host):
                continue
            found.append(
                HouseOption(
                    house_id=house.house_id,
                    host=house.host,
                    free_seats=house.free_seats,
                    seat_shortfall=max(0, party - house.free_seats),
                    blockers=[m for m in house.guests if not oracle.is_compatible(code, m)],
                )
            )
        found.sort(key=lambda o: (len(o.blockers), o.seat_shortfall, o.house_id))
        options[code] = found
    return options

"""Grid build orchestration: placement, repair, relaxation."""

import logging
from collections.abc import Iterable
from dataclasses import replace

from gridbuilder.audit import unseated_options
from gridbuilder.compatibility import CompatibilityOracle
from gridbuilder.exceptions import InputValidationError
from gridbuilder.history import PairHistoryIndex
from gridbuilder.models import (
    MAX_HOUSE_MEMBERS,
    PAIR_SEPARATOR,
    Assignment,
    Attendee,
    Controls,
    GridRow,
    House,
    PairKey,
    SeatingContext,
)
from gridbuilder.optimizer import LocalSearchOptimizer
from gridbuilder.placement import place_scored, place_with_restarts
from gridbuilder.relaxation import ConstraintRelaxationPass

logger = logging.getLogger(__name__)


def validate_attendees(hosts: list[Attendee], guests: list[Attendee]) -> None:
    """Raise InputValidationError for records the engine cannot seat sensibly."""
    seen: set[str] = set()
    for attendee in [*hosts, *guests]:
        code = attendee.code
        if not code:
            raise InputValidationError("Attendee with an empty code")
        if PAIR_SEPARATOR in code:
            raise InputValidationError(f"Attendee code {code!r} may not contain {PAIR_SEPARATOR!r}")
        if code in seen:
            raise InputValidationError(f"Duplicate attendee code: {code}")
        seen.add(code)
        if attendee.party_size < 1:
            raise InputValidationError(f"{code}: party size must be at least 1")

    for host in hosts:
        if host.self_occupancy not in (1, 2):
            raise InputValidationError(f"Host {host.code}: self occupancy must be 1 or 2")
        if host.seat_capacity < host.self_occupancy:
            raise InputValidationError(f"Host {host.code}: fewer seats than the host's own party")


def build_houses(
    hosts: list[Attendee],
    attendees: dict[str, Attendee],
    grid_rows: list[GridRow],
) -> list[House]:
    """
    One house per host, in host input order.

    A grid row whose host is attending carries its members and capacity
    over; other hosts get a fresh house holding only their own party.
    """
    host_codes = {h.code for h in hosts}
    rows_by_host: dict[str, GridRow] = {}
    listed: set[str] = set()
    for row in grid_rows:
        if not row.members:
            continue
        if row.members[0] in rows_by_host:
            raise InputValidationError(f"Grid lists host {row.members[0]} in more than one house")
        rows_by_host[row.members[0]] = row
        for code in row.members:
            if code in listed:
                raise InputValidationError(f"Grid lists {code} more than once")
            listed.add(code)

    for host_code in rows_by_host.keys() - host_codes:
        logger.warning("Dropping grid row for %s: not in the host list", host_code)

    used_ids = {row.house_id for code, row in rows_by_host.items() if code in host_codes and row.house_id}
    next_id = 0

    def fresh_id() -> int:
        nonlocal next_id
        next_id += 1
        while next_id in used_ids:
            next_id += 1
        return next_id

    houses: list[House] = []
    for host in hosts:
        row = rows_by_host.get(host.code)
        if row is not None:
            house = _house_from_row(row, host, attendees)
            if not house.house_id:
                house.house_id = fresh_id()
        else:
            house = House(
                house_id=fresh_id(),
                capacity=host.seat_capacity,
                members=[host.code],
                occupied_seats=host.self_occupancy,
            )
        houses.append(house)
    return houses


def _house_from_row(row: GridRow, host: Attendee, attendees: dict[str, Attendee]) -> House:
    if len(row.members) > MAX_HOUSE_MEMBERS:
        raise InputValidationError(f"Grid house {row.house_id} has more than {MAX_HOUSE_MEMBERS} members")
    unknown = [m for m in row.members if m not in attendees]
    if unknown:
        raise InputValidationError(f"Grid house {row.house_id} lists unknown members: {', '.join(unknown)}")
    if any(attendees[m].is_host for m in row.members[1:]):
        raise InputValidationError(f"Grid house {row.house_id} seats a host as a guest")

    capacity = row.capacity if row.capacity is not None else host.seat_capacity
    occupied = sum(attendees[m].party_size for m in row.members)
    if occupied > capacity:
        raise InputValidationError(f"Grid house {row.house_id} seats {occupied} in {capacity} seats")
    if row.occupied_seats is not None and row.occupied_seats != occupied:
        logger.warning(
            "Grid house %s: recorded %d seated, members take %d", row.house_id, row.occupied_seats, occupied
        )
    return House(house_id=row.house_id, capacity=capacity, members=list(row.members), occupied_seats=occupied)


def build_grid(
    hosts: list[Attendee],
    guests: list[Attendee],
    never_match: Iterable[PairKey],
    history: PairHistoryIndex,
    controls: Controls,
    grid_rows: list[GridRow] | None = None,
) -> Assignment:
    """
    Build the seating grid for the next dinner.

    Runs initial placement, then local search repair and constraint
    relaxation while anyone is left unseated. Unseated guests are reported
    in the returned Assignment, never raised.
    """
    if controls.time_lapse_threshold < 0:
        raise InputValidationError("Time lapse threshold must not be negative")
    if controls.strategy not in ("scored", "restart"):
        raise InputValidationError(f"Unknown placement strategy: {controls.strategy!r}")
    validate_attendees(hosts, guests)

    # The engine works on its own copies; callers' records are left untouched
    hosts = [replace(h) for h in hosts]
    guests = [replace(g) for g in guests]
    for host in hosts:
        host.role = "host"
        host.party_size = host.self_occupancy
        host.seated = True
    for guest in guests:
        guest.role = "guest"
        if controls.clear_seated:
            guest.seated = False
    for attendee in [*hosts, *guests]:
        if attendee.prior_connections is None:
            attendee.prior_connections = history.connection_count(attendee.code)

    attendees = {a.code: a for a in [*hosts, *guests]}
    rows = [] if controls.clear_grid or grid_rows is None else grid_rows
    houses = build_houses(hosts, attendees, rows)
    carried = {code for house in houses for code in house.guests}
    for row in rows:
        # Guests of a dropped row lost their house and are placed again
        for code in row.members[1:]:
            if code not in carried and code in attendees and not attendees[code].is_host:
                attendees[code].seated = False
    for code in carried:
        attendees[code].seated = True

    oracle = CompatibilityOracle(history, never_match, controls.time_lapse_threshold)
    oracle.narrow_to(attendees)
    context = SeatingContext(attendees, houses, oracle, [g.code for g in guests])

    phase_residuals: dict[str, int] = {}
    logger.info("Building grid: %d houses, %d guests to seat", len(houses), len(context.unseated()))

    if controls.strategy == "restart":
        best, attempts = place_with_restarts(context, controls)
        context.adopt(best)
        logger.info("Best result: %d unseated after %d attempts", len(context.unseated()), attempts)
    else:
        place_scored(context, controls)
    phase_residuals["placement"] = len(context.unseated())

    if context.unseated():
        logger.info("Starting swap optimization for %d unseated guests", len(context.unseated()))
        LocalSearchOptimizer(context).optimize()
    phase_residuals["local_search"] = len(context.unseated())

    relaxed: dict[str, int] = {}
    if context.unseated():
        relaxed = ConstraintRelaxationPass(context, controls.relaxation_steps, controls.relaxation_floor).run()
    phase_residuals["relaxation"] = len(context.unseated())

    assignment = context.snapshot()
    assignment.houses = sorted(context.houses, key=lambda h: h.house_id)
    assignment.phase_residuals = phase_residuals
    assignment.relaxed = relaxed
    if controls.unseated_options:
        assignment.options = unseated_options(context)

    logger.info("Grid complete: %d seated, %d unseated", assignment.seated_count, len(assignment.residual))
    return assignment

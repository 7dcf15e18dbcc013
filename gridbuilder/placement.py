"""First-pass placement of guests into houses."""

import logging
import math

import numpy as np

from gridbuilder.critical import CriticalGuestAnalyzer
from gridbuilder.models import MAX_HOUSE_MEMBERS, Attendee, Controls, House, SeatingContext

logger = logging.getLogger(__name__)

# Score weights for guest-centric placement
SLACK_WEIGHT = 1.0
BALANCE_WEIGHT = 1.0
FRESHNESS_WEIGHT = 1.0
FRESHNESS_CAP_MONTHS = 36

# Share of each list kept in sorted order on restarts after the first
RESTART_STABLE_FRACTION = 0.7


def order_attendees(attendees: list[Attendee], sort: bool = True) -> list[Attendee]:
    """Most prior connections first; ties by the caller's order field, then input order."""
    if not sort:
        return list(attendees)
    return sorted(attendees, key=lambda a: (-(a.prior_connections or 0), a.order))


def ordered_houses(context: SeatingContext, sort_hosts: bool = True) -> list[House]:
    """Active houses in host order."""
    houses = context.active_houses()
    if not sort_hosts:
        return houses
    hosts = order_attendees([context.attendees[h.host] for h in houses])
    position = {a.code: i for i, a in enumerate(hosts)}
    return sorted(houses, key=lambda h: position[h.host])


def shuffle_tail(items: list, rng: np.random.Generator, stable_fraction: float = RESTART_STABLE_FRACTION) -> None:
    """Fisher-Yates shuffle of the items after the first `stable_fraction` of the list."""
    start = math.floor(len(items) * stable_fraction)
    for i in range(len(items) - 1, start, -1):
        j = start + int(rng.integers(0, i - start + 1))
        items[i], items[j] = items[j], items[i]


def score_house(context: SeatingContext, code: str, house: House) -> float:
    """
    Score a house for a guest; higher is better.

    Rewards free seats left after placement (spreads load), fewer current
    members (balances group sizes) and members the guest has not met for
    longest (capped per pair; never met counts as the cap).
    """
    party = context.party_size(code)
    slack = (house.free_seats - party) / house.capacity if house.capacity else 0.0
    balance = 1.0 / len(house.members)

    freshness = 0.0
    history = context.oracle.history
    for member in house.members:
        months = history.months_apart(code, member)
        months = FRESHNESS_CAP_MONTHS if months is None else min(months, FRESHNESS_CAP_MONTHS)
        freshness += months / FRESHNESS_CAP_MONTHS
    freshness /= MAX_HOUSE_MEMBERS

    return SLACK_WEIGHT * slack + BALANCE_WEIGHT * balance + FRESHNESS_WEIGHT * freshness


def _next_guest(pending: list[str], analyzer: CriticalGuestAnalyzer) -> str:
    """Pick the first critical guest still pending, else the next in order."""
    for code in pending:
        if analyzer.option_count(code) <= analyzer.ceiling:
            return code
    return pending[0]


def place_scored(context: SeatingContext, controls: Controls) -> int:
    """
    Seat each unseated guest once, in the best-scoring house that fits.

    Critical guests are pulled to the front of the queue. A house is skipped
    if taking it would leave another critical guest with nowhere to sit.
    Returns the number of guests seated.
    """
    analyzer = CriticalGuestAnalyzer(context, controls.critical_ceiling)
    guests = [context.attendees[c] for c in context.guest_order]
    pending = [g.code for g in order_attendees(guests, controls.sort_guests) if not g.seated]
    houses = ordered_houses(context, controls.sort_hosts)

    seated = 0
    while pending:
        code = _next_guest(pending, analyzer)
        pending.remove(code)

        best: House | None = None
        best_score = float("-inf")
        fallback: House | None = None
        fallback_score = float("-inf")
        for house in houses:
            if not context.fits(code, house):
                continue
            score = score_house(context, code, house)
            if score > fallback_score:
                fallback, fallback_score = house, score
            if score > best_score and not analyzer.would_strand(code, house):
                best, best_score = house, score

        # Every open house strands another guest; take the best one anyway
        if best is None:
            best, best_score = fallback, fallback_score
        if best is None:
            logger.debug("No house for %s", code)
            continue
        context.seat(code, best)
        seated += 1
        logger.debug("Placed %s in house %d (score %.3f)", code, best.house_id, best_score)

    return seated


def fill_house(context: SeatingContext, house: House, guests: list[str], throttle_singles: bool) -> int:
    """Repeatedly seat the first guest in list order that fits, until none does."""
    seated = 0
    while house.has_free_slot and house.free_seats > 0:
        for code in guests:
            attendee = context.attendees[code]
            if attendee.seated:
                continue
            if throttle_singles and attendee.party_size == 1 and len(house.members) < 2:
                continue
            if context.fits(code, house):
                context.seat(code, house)
                seated += 1
                break
        else:
            break
    return seated


def place_with_restarts(
    context: SeatingContext,
    controls: Controls,
    rng: np.random.Generator | None = None,
) -> tuple[SeatingContext, int]:
    """
    Greedy bin-packing with randomized restarts.

    Each attempt fills the houses in host order from a fresh copy of
    `context`. Attempts after the first shuffle the least constrained tail
    of the host and guest lists. Returns the attempt with the fewest
    unseated guests and the number of attempts made.
    """
    if rng is None:
        rng = np.random.default_rng(controls.seed)

    guests = order_attendees([context.attendees[c] for c in context.guest_order], controls.sort_guests)
    guest_codes = [g.code for g in guests]

    best: SeatingContext | None = None
    best_unseated = math.inf
    attempts = 0
    for attempt in range(max(1, controls.max_attempts)):
        attempts += 1
        trial = context.copy()
        houses = ordered_houses(trial, controls.sort_hosts)
        order = list(guest_codes)
        if attempt > 0:
            shuffle_tail(houses, rng)
            shuffle_tail(order, rng)

        for house in houses:
            fill_house(trial, house, order, controls.throttle_singles)

        unseated = len(trial.unseated())
        logger.info("Attempt %d: %d unseated", attempts, unseated)
        if unseated < best_unseated:
            best, best_unseated = trial, unseated
            if unseated == 0:
                logger.info("Perfect solution found on attempt %d", attempts)
                break

    assert best is not None
    return best, attempts

"""Local search repair: relocate seated guests to make room for unseated ones."""

import logging
from collections.abc import Callable

from gridbuilder.models import House, SeatingContext

logger = logging.getLogger(__name__)


class LocalSearchOptimizer:
    """
    Four repair strategies run in escalating order.

    Every move is checked against the complete member list of each house it
    touches; a move that would break capacity or compatibility is simply not
    made.
    """

    def __init__(self, context: SeatingContext):
        self.context = context
        self.moves: list[str] = []

    def optimize(self) -> int:
        """Run the strategies until nobody is left unseated. Returns the residual count."""
        strategies: list[tuple[str, Callable[[], int]]] = [
            ("simple swap", self.simple_swap),
            ("two-way swap", self.two_way_swap),
            ("chain swap", self.chain_swap),
            ("capacity consolidation", self.consolidate_capacity),
        ]
        for name, strategy in strategies:
            if self.context.unseated():
                self.seat_direct()
            if not self.context.unseated():
                break
            seated = strategy()
            logger.info("%s: seated %d, %d unseated", name.capitalize(), seated, len(self.context.unseated()))
        return len(self.context.unseated())

    def _record(self, message: str) -> None:
        self.moves.append(message)
        logger.debug(message)

    def _find_home(self, code: str, *exclude: House, context: SeatingContext | None = None) -> House | None:
        ctx = context or self.context
        for house in ctx.active_houses():
            if any(house is e for e in exclude):
                continue
            if ctx.fits(code, house):
                return house
        return None

    def seat_direct(self) -> int:
        """Seat any unseated guest that fits a house as it stands."""
        seated = 0
        for code in self.context.unseated():
            house = self._find_home(code)
            if house is not None:
                self.context.seat(code, house)
                seated += 1
                self._record(f"Direct: {code} into house {house.house_id}")
        return seated

    def simple_swap(self) -> int:
        """Evict one guest to seat an unseated one, re-seating the evicted guest elsewhere."""
        seated = 0
        for code in self.context.unseated():
            if self._simple_swap_one(code):
                seated += 1
        return seated

    def _simple_swap_one(self, code: str) -> bool:
        ctx = self.context
        for house in ctx.active_houses():
            for member in house.guests:
                if not ctx.fits(code, house, without=(member,)):
                    continue
                target = self._find_home(member, house)
                if target is None:
                    continue
                ctx.move(member, house, target)
                ctx.seat(code, house)
                self._record(
                    f"Swap: {code} into house {house.house_id}, {member} moved to house {target.house_id}"
                )
                return True
        return False

    def two_way_swap(self) -> int:
        """Exchange guests between two houses when that opens a seat for an unseated guest."""
        seated = 0
        while self.context.unseated() and self._two_way_swap_once():
            seated += 1
        return seated

    def _two_way_swap_once(self) -> bool:
        ctx = self.context
        houses = ctx.active_houses()
        for i, first in enumerate(houses):
            for second in houses[i + 1 :]:
                for m1 in first.guests:
                    for m2 in second.guests:
                        opening = self._swap_opening(first, m1, second, m2)
                        if opening is None:
                            continue
                        code, house = opening
                        first.remove(m1, ctx.party_size(m1))
                        second.remove(m2, ctx.party_size(m2))
                        first.add(m2, ctx.party_size(m2))
                        second.add(m1, ctx.party_size(m1))
                        ctx.seat(code, house)
                        self._record(
                            f"Two-way swap: {m1} (house {first.house_id}) <-> {m2} (house {second.house_id}), "
                            f"{code} into house {house.house_id}"
                        )
                        return True
        return False

    def _swap_opening(self, first: House, m1: str, second: House, m2: str) -> tuple[str, House] | None:
        """Simulate exchanging m1 and m2; return an unseated guest who then fits, and where."""
        ctx = self.context
        after_first = first.copy()
        after_second = second.copy()
        after_first.remove(m1, ctx.party_size(m1))
        after_second.remove(m2, ctx.party_size(m2))
        if not (ctx.fits(m2, after_first) and ctx.fits(m1, after_second)):
            return None
        after_first.add(m2, ctx.party_size(m2))
        after_second.add(m1, ctx.party_size(m1))

        for code in ctx.unseated():
            # Only an opening the exchange itself creates counts
            if ctx.fits(code, first) or ctx.fits(code, second):
                continue
            if ctx.fits(code, after_first):
                return code, first
            if ctx.fits(code, after_second):
                return code, second
        return None

    def chain_swap(self) -> int:
        """Move every guest blocking a house to other houses, then seat the unseated guest there."""
        seated = 0
        for code in self.context.unseated():
            for house in self.context.active_houses():
                if self._chain_into(code, house):
                    seated += 1
                    break
        return seated

    def _chain_into(self, code: str, house: House) -> bool:
        ctx = self.context
        oracle = ctx.oracle
        if not oracle.is_compatible(code, house.host):
            return False
        blockers = [m for m in house.guests if not oracle.is_compatible(code, m)]
        if not blockers:
            return False

        trial = ctx.copy()
        target = trial.houses[ctx.houses.index(house)]
        steps: list[str] = []
        for blocker in blockers:
            step = self._relocate(trial, blocker, target)
            if step is None:
                return False
            steps.append(step)
        if not trial.fits(code, target):
            return False

        trial.seat(code, target)
        ctx.adopt(trial)
        self._record(f"Chain swap: {'; '.join(steps)}; {code} into house {house.house_id}")
        return True

    def _relocate(self, trial: SeatingContext, code: str, source: House) -> str | None:
        """Move `code` out of `source` directly, or by displacing one guest into a third house."""
        home = self._find_home(code, source, context=trial)
        if home is not None:
            trial.move(code, source, home)
            return f"{code} moved to house {home.house_id}"

        for house in trial.active_houses():
            if house is source:
                continue
            for displaced in house.guests:
                if not trial.fits(code, house, without=(displaced,)):
                    continue
                onward = self._find_home(displaced, source, house, context=trial)
                if onward is None:
                    continue
                trial.move(displaced, house, onward)
                trial.move(code, source, house)
                return f"{displaced} moved to house {onward.house_id}, {code} moved to house {house.house_id}"
        return None

    def consolidate_capacity(self) -> int:
        """Free a second seat for an unseated couple by moving a single out of a house."""
        seated = 0
        ctx = self.context
        for code in ctx.unseated():
            if ctx.party_size(code) != 2:
                continue
            if self._consolidate_for(code):
                seated += 1
        return seated

    def _consolidate_for(self, code: str) -> bool:
        ctx = self.context
        for house in ctx.active_houses():
            if house.free_seats != 1:
                continue
            for single in house.guests:
                if ctx.party_size(single) != 1:
                    continue
                if not ctx.fits(code, house, without=(single,)):
                    continue
                target = self._find_home(single, house)
                if target is None:
                    continue
                ctx.move(single, house, target)
                ctx.seat(code, house)
                self._record(
                    f"Consolidation: {single} moved to house {target.house_id}, "
                    f"{code} into house {house.house_id}"
                )
                return True
        return False

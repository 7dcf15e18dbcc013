"""Detection of guests who are running out of places to sit."""

from gridbuilder.models import House, SeatingContext

DEFAULT_CRITICAL_CEILING = 2


class CriticalGuestAnalyzer:
    """
    Count the houses still open to each unseated guest.

    The count is a cheap pre-filter: seats, a free member slot and
    compatibility with the host only. Placement re-checks every member.
    """

    def __init__(self, context: SeatingContext, ceiling: int = DEFAULT_CRITICAL_CEILING):
        self.context = context
        self.ceiling = ceiling

    def option_count(self, code: str) -> int:
        party = self.context.party_size(code)
        oracle = self.context.oracle
        return sum(
            1
            for house in self.context.active_houses()
            if house.free_seats >= party and house.has_free_slot and oracle.is_compatible(code, house.host)
        )

    def option_counts(self) -> dict[str, int]:
        return {code: self.option_count(code) for code in self.context.unseated()}

    def critical_codes(self, exclude: str | None = None) -> list[str]:
        """Unseated guests with at most `ceiling` houses left, in guest order."""
        return [
            code
            for code in self.context.unseated()
            if code != exclude and self.option_count(code) <= self.ceiling
        ]

    def would_strand(self, code: str, house: House) -> bool:
        """
        Check whether seating `code` in `house` takes the last viable house
        away from another unseated critical guest.
        """
        after = house.copy()
        after.add(code, self.context.party_size(code))

        for other in self.critical_codes(exclude=code):
            if not self.context.fits(other, house):
                continue
            if self.context.fits(other, after):
                continue
            # `house` is about to close for `other`; stranded if it was the only one
            viable = [h for h in self.context.active_houses() if self.context.fits(other, h)]
            if len(viable) == 1:
                return True
        return False

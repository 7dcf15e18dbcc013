"""Last-resort seating with a loosened months-apart threshold."""

import logging

from gridbuilder.models import SeatingContext

logger = logging.getLogger(__name__)

DEFAULT_RELAXATION_STEPS = (24, 18, 12, 6, 3, 0)


class ConstraintRelaxationPass:
    """
    Seat guests who have no compatible house at all by lowering the threshold.

    Only guests with zero houses compatible with every current member at the
    original threshold are considered; guests blocked merely by a full
    house are left alone. The never-match list is never relaxed.
    """

    def __init__(
        self,
        context: SeatingContext,
        steps: tuple[int, ...] = DEFAULT_RELAXATION_STEPS,
        floor: int = 0,
    ):
        self.context = context
        threshold = context.oracle.threshold
        self.steps = sorted({s for s in steps if floor <= s < threshold}, reverse=True)

    def compatible_house_count(self, code: str) -> int:
        """Houses whose every member `code` may sit with at the original threshold, ignoring seats."""
        oracle = self.context.oracle
        return sum(1 for h in self.context.active_houses() if oracle.fits_members(code, h.members))

    def run(self) -> dict[str, int]:
        """Returns the threshold each newly seated guest was seated at."""
        relaxed: dict[str, int] = {}
        for code in self.context.unseated():
            if self.compatible_house_count(code) > 0:
                logger.debug("Skipping relaxation for %s: has a compatible house", code)
                continue
            for threshold in self.steps:
                house = next(
                    (h for h in self.context.active_houses() if self.context.fits(code, h, threshold)),
                    None,
                )
                if house is None:
                    continue
                self.context.seat(code, house)
                relaxed[code] = threshold
                logger.info("Relaxed: %s into house %d at %d months", code, house.house_id, threshold)
                break
            else:
                logger.info("Could not seat %s at any relaxed threshold", code)
        return relaxed

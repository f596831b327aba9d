"""Exception counting that decides when a session must be re-created."""

import structlog

logger = structlog.get_logger()


class FailureCounter:
    """Counts transport failures of one session.

    Once the count exceeds a positive threshold, ``record`` reports that the
    session should be replaced. There is no backoff between restarts; a new
    session starts from zero.
    """

    def __init__(self, threshold: int | None = None) -> None:
        self.threshold = threshold
        self.count = 0

    def record(self) -> bool:
        """Count one failure and return True when the threshold is exceeded."""
        self.count += 1
        exceeded = bool(self.threshold) and self.threshold > 0 and self.count > self.threshold
        logger.debug("Transport failure recorded", count=self.count, threshold=self.threshold, exceeded=exceeded)
        return exceeded

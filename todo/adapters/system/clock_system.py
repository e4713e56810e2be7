from todo.ports.clock import Clock
from datetime import datetime, timezone

class SystemClock(Clock):
    """System adapter returning the current UTC time."""

    def now(self) -> datetime:
        """Current time in UTC (aware)."""
        return datetime.now(timezone.utc)

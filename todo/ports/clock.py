from typing import Protocol
from datetime import datetime

class Clock(Protocol):
    """Source of "now". Returns an aware UTC datetime."""
    def now(self) -> datetime:
        pass

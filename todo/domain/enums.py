from enum import Enum


class Repeat(str, Enum):
    """Known recurrence rules; anything else in `Task.repeat` is kept verbatim."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    def __str__(self):
        return self.value


class Priority(int, Enum):
    LOW = 1
    MEDIUM = 2
    HIGH = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()


class SortKey(str, Enum):
    DUE = "due"
    PRIORITY = "priority"
    CREATED = "created"
    STATUS = "status"
    TITLE = "title"

    @classmethod
    def parse(cls, raw: "str | SortKey | None") -> "SortKey":
        """Unknown or empty keys fall back to `due`."""
        if isinstance(raw, SortKey):
            return raw
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.DUE

    def __str__(self):
        return self.value


class AlertKind(str, Enum):
    OVERDUE = "Overdue"
    DUE_SOON = "Due Soon"
    BLOCKED = "Blocked"

    def __str__(self):
        return self.value

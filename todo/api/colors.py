from enum import Enum

class TaskColor(Enum):
    RED = "[red]"
    YELLOW = "[yellow]"
    GREEN = "[green]"
    DIM = "[dim]"
    RESET = "[/]"

    def __str__(self):
        return self.value


PRIORITY_COLORS = {
    3: TaskColor.RED,
    2: TaskColor.YELLOW,
    1: TaskColor.GREEN,
}

PRIORITY_LABELS = {
    3: "high",
    2: "medium",
    1: "low",
}


def color_priority(priority: int) -> str:
    color = PRIORITY_COLORS.get(priority, TaskColor.DIM)
    return f"{color}{PRIORITY_LABELS.get(priority, priority)}{TaskColor.RESET}"

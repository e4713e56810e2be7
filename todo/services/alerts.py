from todo.domain.collection import all_dependencies_met
from todo.domain.enums import AlertKind
from todo.domain.task import Task
from todo.ports.clock import Clock
from todo.ports.notifier import Notifier
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Sequence
import logging
import threading

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Alert:
    task: Task
    kind: AlertKind
    message: str


def format_duration(delta: timedelta) -> str:
    """Human readable remaining time: "45 minute(s)", "2 hour(s) 5 minute(s)", "3 days"."""
    if delta < timedelta(minutes=1):
        return "less than a minute"
    total_minutes = int(delta.total_seconds() // 60)
    hours, minutes = divmod(total_minutes, 60)
    if hours < 1:
        return f"{minutes} minute(s)"
    if hours < 24:
        return f"{hours} hour(s) {minutes} minute(s)"
    days, hours = divmod(hours, 24)
    if days == 1:
        return "1 day"
    if hours:
        return f"{days} days {hours} hours"
    return f"{days} days"


def summarize(alerts: Sequence[Alert]) -> str:
    if not alerts:
        return "No alerts"
    counts = {kind: 0 for kind in AlertKind}
    for alert in alerts:
        counts[alert.kind] += 1
    parts = [
        f"{counts[AlertKind.OVERDUE]} overdue" if counts[AlertKind.OVERDUE] else "",
        f"{counts[AlertKind.DUE_SOON]} due soon" if counts[AlertKind.DUE_SOON] else "",
        f"{counts[AlertKind.BLOCKED]} blocked" if counts[AlertKind.BLOCKED] else "",
    ]
    return f"{len(alerts)} alerts: " + ", ".join(p for p in parts if p)


class AlertScanner:
    """
    Turns a task collection into a feed of alerts.

    Per pending task at most one alert: overdue wins over due-soon, and
    blocked is only reported when the task is neither.
    """

    def __init__(self, notifier: Notifier, clock: Clock) -> None:
        self.notifier = notifier
        self.clock = clock

    def scan(self, tasks: Iterable[Task], now: datetime, lookahead: timedelta) -> list[Alert]:
        tasks = tuple(tasks)
        alerts: list[Alert] = []
        for task in tasks:
            if task.is_done():
                continue
            if task.is_overdue(now):
                alerts.append(Alert(task, AlertKind.OVERDUE, f"Task is overdue: {task.title}"))
            elif task.is_due_soon(now, lookahead):
                due_in = format_duration(task.due - now)
                alerts.append(Alert(task, AlertKind.DUE_SOON, f"Task due in {due_in}: {task.title}"))
            elif not all_dependencies_met(tasks, task):
                alerts.append(Alert(task, AlertKind.BLOCKED, f"Task blocked by dependencies: {task.title}"))
        return alerts

    def scan_and_notify(self, tasks: Iterable[Task], now: datetime, lookahead: timedelta) -> list[Alert]:
        alerts = self.scan(tasks, now, lookahead)
        for alert in alerts:
            try:
                self.notifier.send(str(alert.kind), alert.message)
            except Exception:
                logger.exception("Notifier failed for task id=%s", alert.task.id)
        return alerts

    def watch(
        self,
        load: Callable[[], Iterable[Task]],
        *,
        interval: timedelta,
        lookahead: timedelta,
        stop: threading.Event,
        on_alerts: Callable[[list[Alert]], None] | None = None,
        max_cycles: int | None = None,
    ) -> int:
        """
        Polling loop: every `interval` reload the collection, scan and notify.

        A failed reload is logged and that cycle is skipped; the loop keeps
        going until `stop` is set (or `max_cycles` cycles have run).

        :return: number of cycles that scanned successfully.
        """
        logger.info("Watching for alerts interval=%s lookahead=%s", interval, lookahead)
        cycles = scanned = 0
        while not stop.is_set():
            cycles += 1
            try:
                tasks = tuple(load())
            except Exception:
                logger.exception("Reloading tasks failed; skipping this cycle")
            else:
                alerts = self.scan_and_notify(tasks, self.clock.now(), lookahead)
                scanned += 1
                if on_alerts is not None:
                    on_alerts(alerts)
            if max_cycles is not None and cycles >= max_cycles:
                break
            stop.wait(interval.total_seconds())
        logger.info("Alert watch stopped after %d cycle(s)", cycles)
        return scanned

from todo.ports.notifier import Notifier
from rich.console import Console
from rich.panel import Panel
import logging
import shutil
import subprocess
import sys

logger = logging.getLogger(__name__)


class ConsoleNotifier(Notifier):
    """Prints the alert as a Rich panel."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def send(self, title: str, message: str) -> None:
        self.console.print(Panel.fit(f"🔔 {message}", title=title, border_style="yellow"))


class NoOpNotifier(Notifier):
    """Drops every alert."""

    def send(self, title: str, message: str) -> None:
        return None


class DesktopNotifier(Notifier):
    """
    Desktop notification through the platform tool:
    `notify-send` on Linux, `osascript` on macOS.

    When the tool is missing or fails and `fallback` is set, the alert goes to
    the fallback notifier instead; otherwise the error propagates.
    """

    def __init__(self, fallback: Notifier | None = None, platform: str | None = None) -> None:
        self.fallback = fallback
        self.platform = platform or sys.platform

    def _command(self, title: str, message: str) -> list[str] | None:
        if self.platform.startswith("linux") and shutil.which("notify-send"):
            return ["notify-send", title, message, "-u", "normal"]
        if self.platform == "darwin" and shutil.which("osascript"):
            script = f'display notification "{_escape(message)}" with title "{_escape(title)}"'
            return ["osascript", "-e", script]
        return None

    def send(self, title: str, message: str) -> None:
        cmd = self._command(title, message)
        if cmd is None:
            if self.fallback is None:
                raise RuntimeError(f"no desktop notifier available on {self.platform}")
            self.fallback.send(title, message)
            return
        try:
            subprocess.run(cmd, check=True, capture_output=True, timeout=10)
        except (OSError, subprocess.SubprocessError):
            if self.fallback is None:
                raise
            logger.debug("desktop notification failed, using fallback", exc_info=True)
            self.fallback.send(title, message)


def _escape(text: str) -> str:
    return text.replace("\\", "\\\\").replace('"', '\\"')

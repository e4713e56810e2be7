from typing import Protocol

class Notifier(Protocol):
    """Delivers one alert to the user (desktop popup, terminal, nothing)."""
    def send(self, title: str, message: str) -> None:
        pass

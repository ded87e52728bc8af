"""
Notification sinks for messages meant for the signed-in user.
"""

from abc import ABC, abstractmethod
from typing import Callable

from shared.logging import get_logger


class Notifier(ABC):
    """Surfaces messages to the user (toasts, banners, console)."""

    @abstractmethod
    def error(self, message: str) -> None:
        ...

    @abstractmethod
    def success(self, message: str) -> None:
        ...


class LogNotifier(Notifier):
    """Default sink: writes notifications to the structured log."""

    def __init__(self):
        self.logger = get_logger("staff_gateway.notifications")

    def error(self, message: str) -> None:
        self.logger.warning("User notification", level="error", message=message)

    def success(self, message: str) -> None:
        self.logger.info("User notification", level="success", message=message)


class CallbackNotifier(Notifier):
    """Forwards notifications to a UI callback taking ``(level, message)``."""

    def __init__(self, callback: Callable[[str, str], None]):
        self.callback = callback

    def error(self, message: str) -> None:
        self.callback("error", message)

    def success(self, message: str) -> None:
        self.callback("success", message)

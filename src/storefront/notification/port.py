"""Notification port: abstract interface for shopper-facing notices."""

from abc import ABC, abstractmethod

SUCCESS = "success"
FAILURE = "failure"
WARNING = "warning"


class NotificationPort(ABC):
    """Fire-and-forget channel for success/failure toasts."""

    @abstractmethod
    def notify(self, level: str, message: str, **context) -> None:
        """Deliver one notice. Must not block the caller for long."""
        ...

"""Notification surface registry.

Provides get_notifier() / set_notifier() to swap implementations:
- LogNotifier by default
- FakeNotifier in tests
"""

from storefront.notification.log_adapter import LogNotifier
from storefront.notification.port import NotificationPort
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

_current_notifier: NotificationPort | None = None


def get_notifier() -> NotificationPort:
    """Return the current notifier. Defaults to LogNotifier."""
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = LogNotifier()
    return _current_notifier


def set_notifier(notifier: NotificationPort) -> None:
    """Override the active notifier (useful for tests)."""
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    """Reset to the default notifier."""
    global _current_notifier
    _current_notifier = None


def notify(level: str, message: str, **context) -> None:
    """Send a notice without ever failing the caller's operation."""
    try:
        get_notifier().notify(level, message, **context)
    except Exception as exc:
        logger.warning("Notification dropped", notice_level=level, notice=message, error=str(exc))

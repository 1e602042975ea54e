"""Notification adapter that writes notices to the structured log."""

from storefront.notification.port import FAILURE, WARNING, NotificationPort
from storefront.utils.logging import get_logger

logger = get_logger(__name__)


class LogNotifier(NotificationPort):
    def notify(self, level: str, message: str, **context) -> None:
        if level == FAILURE:
            logger.error(message, notice_level=level, **context)
        elif level == WARNING:
            logger.warning(message, notice_level=level, **context)
        else:
            logger.info(message, notice_level=level, **context)

"""Fake notification adapter: records notices for test assertions."""

from storefront.notification.port import NotificationPort


class FakeNotifier(NotificationPort):
    def __init__(self):
        self.sent: list[dict] = []
        self.should_fail = False

    def configure(self, should_fail: bool = False):
        """Make delivery raise, to exercise callers that must not be blocked."""
        self.should_fail = should_fail

    def notify(self, level: str, message: str, **context) -> None:
        if self.should_fail:
            raise ConnectionError("Notification surface unavailable")
        self.sent.append({"level": level, "message": message, **context})

    def of_level(self, level: str) -> list[dict]:
        return [notice for notice in self.sent if notice["level"] == level]

    def reset(self):
        self.sent.clear()
        self.should_fail = False

import json

import pytest
import requests
from storefront.notification import reset_notifier, set_notifier
from storefront.notification.fake_adapter import FakeNotifier


class FakeResponse:
    def __init__(self, status_code=200, body=None):
        self.status_code = status_code
        self._body = body
        self.content = b"" if body is None else json.dumps(body).encode()
        self.text = self.content.decode()

    def json(self):
        if self._body is None:
            raise ValueError("No JSON body")
        return self._body


class FakeSession:
    """Stands in for requests.Session, answering from a scripted queue."""

    def __init__(self):
        self.calls = []
        self._answers = []

    def queue(self, *answers):
        """Each answer is a FakeResponse or an exception to raise."""
        self._answers.extend(answers)

    def request(self, method, url, json=None, headers=None, timeout=None):
        self.calls.append({"method": method, "url": url, "json": json, "headers": headers, "timeout": timeout})
        answer = self._answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


@pytest.fixture()
def notifier():
    fake = FakeNotifier()
    set_notifier(fake)
    yield fake
    reset_notifier()


@pytest.fixture()
def http():
    return FakeSession()


@pytest.fixture()
def timeout_error():
    return requests.Timeout("read timed out")


@pytest.fixture()
def respond():
    """Build a FakeResponse: `respond(status_code, body)`."""
    return FakeResponse

import pytest

import micro_sentry
from micro_sentry import api
from micro_sentry.consts import Severity
from micro_sentry.transport import Transport


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """
    Keeps the DSN, release and environment of the machine running the tests
    out of the clients built by the tests.
    """
    for name in ("SENTRY_DSN", "SENTRY_RELEASE", "SENTRY_ENVIRONMENT"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def clean_client():
    """Resets the process-wide client for every test."""
    api._set_client(None)
    yield
    api._set_client(None)


class TestTransport(Transport):
    def __init__(self):
        Transport.__init__(self)

    def capture_event(self, event):
        """No-op capture_event for tests"""
        pass


@pytest.fixture
def sentry_init():
    def inner(*a, **kw):
        kw.setdefault("transport", TestTransport())
        client = micro_sentry.Client(*a, **kw)
        api._set_client(client)
        return client

    return inner


@pytest.fixture
def capture_events(monkeypatch):
    def inner():
        events = []
        test_client = micro_sentry.get_client()
        old_capture_event = test_client.transport.capture_event

        def append_event(event):
            events.append(event)
            return old_capture_event(event)

        monkeypatch.setattr(test_client.transport, "capture_event", append_event)

        return events

    return inner


@pytest.fixture
def make_breadcrumbs():
    """Builds `amount` console breadcrumbs with ids ``id0``, ``id1``, ..."""

    def inner(amount, level=Severity.CRITICAL):
        return [
            {"event_id": "id%s" % index, "type": "console", "level": level}
            for index in range(amount)
        ]

    return inner

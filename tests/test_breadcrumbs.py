from unittest import mock

import pytest

from micro_sentry import Client, Severity
from micro_sentry.breadcrumbs import BreadcrumbBuffer, resolve_max_breadcrumbs
from micro_sentry.consts import DEFAULT_MAX_BREADCRUMBS


MAX_BREADCRUMBS = 10


@pytest.fixture
def client():
    return Client(
        "http://secret@exampl.dsn/2",
        release="1.0.0",
        max_breadcrumbs=MAX_BREADCRUMBS,
        transport=lambda event: None,
    )


def crumb_ids(crumbs):
    return ",".join(crumb["event_id"] for crumb in crumbs or ())


def test_add_breadcrumb(client):
    client.add_breadcrumb(
        {"event_id": "id", "type": "console", "level": Severity.CRITICAL}
    )
    client.add_breadcrumb(
        {"event_id": "id2", "type": "console", "level": Severity.CRITICAL}
    )

    assert client.state == {
        "breadcrumbs": [
            {
                "event_id": "id",
                "type": "console",
                "level": "critical",
                "timestamp": mock.ANY,
            },
            {
                "event_id": "id2",
                "type": "console",
                "level": "critical",
                "timestamp": mock.ANY,
            },
        ]
    }
    for crumb in client.state["breadcrumbs"]:
        assert isinstance(crumb["timestamp"], float)


def test_add_breadcrumb_with_kwargs(client):
    client.add_breadcrumb(message="clicked", type="ui", data={"x": 1})

    (crumb,) = client.state["breadcrumbs"]
    assert crumb["message"] == "clicked"
    assert crumb["type"] == "ui"
    assert crumb["data"] == {"x": 1}


def test_empty_breadcrumb_goes_through_hook():
    before_breadcrumb = mock.Mock(side_effect=lambda crumb: crumb)
    client = Client(before_breadcrumb=before_breadcrumb)

    client.add_breadcrumb()
    client.add_breadcrumb({})

    assert before_breadcrumb.call_args_list == [mock.call({}), mock.call({})]
    assert client.state == {
        "breadcrumbs": [{"timestamp": mock.ANY}, {"timestamp": mock.ANY}]
    }


def test_existing_timestamp_is_kept(client):
    client.add_breadcrumb({"event_id": "id", "type": "console", "timestamp": 12.5})

    assert client.state["breadcrumbs"][0]["timestamp"] == 12.5


def test_stored_breadcrumb_is_a_copy(client):
    crumb = {"event_id": "id", "type": "console", "data": {"a": 1}}
    client.add_breadcrumb(crumb)

    crumb["data"]["a"] = 2
    crumb["type"] = "http"

    (stored,) = client.state["breadcrumbs"]
    assert stored["data"] == {"a": 1}
    assert stored["type"] == "console"
    assert "timestamp" not in crumb


def test_limit_with_custom_limit_incremental(client, make_breadcrumbs):
    for crumb in make_breadcrumbs(MAX_BREADCRUMBS + 2):
        client.add_breadcrumb(crumb)

    assert len(client.state["breadcrumbs"]) == MAX_BREADCRUMBS


def test_limit_with_custom_limit_all_at_once(client, make_breadcrumbs):
    client.set_breadcrumbs(make_breadcrumbs(MAX_BREADCRUMBS + 2))

    assert len(client.state["breadcrumbs"]) == MAX_BREADCRUMBS


def test_limit_with_default_limit_incremental(make_breadcrumbs):
    client = Client()
    for crumb in make_breadcrumbs(DEFAULT_MAX_BREADCRUMBS + 2):
        client.add_breadcrumb(crumb)

    assert len(client.state["breadcrumbs"]) == DEFAULT_MAX_BREADCRUMBS


def test_limit_with_default_limit_all_at_once(make_breadcrumbs):
    client = Client()
    client.set_breadcrumbs(make_breadcrumbs(DEFAULT_MAX_BREADCRUMBS + 2))

    assert len(client.state["breadcrumbs"]) == DEFAULT_MAX_BREADCRUMBS


def test_only_last_breadcrumbs_are_kept_incremental(client, make_breadcrumbs):
    for crumb in make_breadcrumbs(MAX_BREADCRUMBS + 2):
        client.add_breadcrumb(crumb)

    assert crumb_ids(client.state["breadcrumbs"]) == (
        "id2,id3,id4,id5,id6,id7,id8,id9,id10,id11"
    )


def test_only_last_breadcrumbs_are_kept_all_at_once(client, make_breadcrumbs):
    client.set_breadcrumbs(make_breadcrumbs(MAX_BREADCRUMBS + 2))

    assert crumb_ids(client.state["breadcrumbs"]) == (
        "id2,id3,id4,id5,id6,id7,id8,id9,id10,id11"
    )


def test_set_breadcrumbs_replaces_history(client, make_breadcrumbs):
    client.add_breadcrumb({"event_id": "old", "type": "console"})
    client.set_breadcrumbs(make_breadcrumbs(2))

    assert crumb_ids(client.state["breadcrumbs"]) == "id0,id1"


def test_zero_max_breadcrumbs_incremental(make_breadcrumbs):
    client = Client(max_breadcrumbs=0)
    for crumb in make_breadcrumbs(1):
        client.add_breadcrumb(crumb)

    assert client.state == {"breadcrumbs": []}


def test_zero_max_breadcrumbs_all_at_once(make_breadcrumbs):
    client = Client(max_breadcrumbs=0)
    client.set_breadcrumbs(make_breadcrumbs(1))

    assert client.state == {"breadcrumbs": []}


def test_zero_max_breadcrumbs_never_calls_hook(make_breadcrumbs):
    before_breadcrumb = mock.Mock(side_effect=lambda crumb: crumb)
    client = Client(max_breadcrumbs=0, before_breadcrumb=before_breadcrumb)

    client.set_breadcrumbs(make_breadcrumbs(5))
    client.add_breadcrumb({"event_id": "x", "type": "console"})

    before_breadcrumb.assert_not_called()


def test_negative_max_breadcrumbs_incremental(make_breadcrumbs):
    client = Client(max_breadcrumbs=-100)
    for crumb in make_breadcrumbs(DEFAULT_MAX_BREADCRUMBS + 2):
        client.add_breadcrumb(crumb)

    assert len(client.state["breadcrumbs"]) == DEFAULT_MAX_BREADCRUMBS


def test_negative_max_breadcrumbs_all_at_once(make_breadcrumbs):
    client = Client(max_breadcrumbs=-100)
    client.set_breadcrumbs(make_breadcrumbs(DEFAULT_MAX_BREADCRUMBS + 2))

    assert len(client.state["breadcrumbs"]) == DEFAULT_MAX_BREADCRUMBS


def test_before_breadcrumb_drops_incremental():
    client = Client(
        "http://secret@exampl.dsn/2",
        release="1.0.0",
        before_breadcrumb=lambda crumb: (
            None if crumb["level"] == Severity.DEBUG else crumb
        ),
        transport=lambda event: None,
    )

    # to be ignored
    client.add_breadcrumb(
        {"event_id": "id1", "type": "console", "level": Severity.DEBUG}
    )
    # to be added
    client.add_breadcrumb(
        {"event_id": "id2", "type": "console", "level": Severity.CRITICAL}
    )

    assert client.state["breadcrumbs"] == [
        {
            "event_id": "id2",
            "type": "console",
            "level": "critical",
            "timestamp": mock.ANY,
        }
    ]


def test_before_breadcrumb_drops_all_at_once():
    client = Client(
        before_breadcrumb=lambda crumb: (
            None if crumb["level"] == "debug" else crumb
        ),
    )

    client.set_breadcrumbs(
        [
            {"event_id": "id0", "type": "console", "level": "critical"},
            {"event_id": "id1", "type": "console", "level": "debug"},
            {"event_id": "id2", "type": "console", "level": "warning"},
        ]
    )

    assert crumb_ids(client.state["breadcrumbs"]) == "id0,id2"


def test_before_breadcrumb_can_modify():
    def before_breadcrumb(crumb):
        crumb["message"] = "scrubbed"
        return crumb

    client = Client(before_breadcrumb=before_breadcrumb)
    client.add_breadcrumb({"event_id": "id", "type": "console", "message": "pw=1"})

    assert client.state["breadcrumbs"][0]["message"] == "scrubbed"


def test_before_breadcrumb_errors_propagate():
    def before_breadcrumb(crumb):
        raise ZeroDivisionError()

    client = Client(before_breadcrumb=before_breadcrumb)

    with pytest.raises(ZeroDivisionError):
        client.add_breadcrumb({"event_id": "id", "type": "console"})

    assert "breadcrumbs" not in client.state


def test_dropped_breadcrumb_gets_no_timestamp():
    seen = []

    def before_breadcrumb(crumb):
        seen.append(crumb)
        return None

    buffer = BreadcrumbBuffer(5, before_breadcrumb)
    assert buffer.push({"event_id": "id", "type": "console"}) is False

    assert len(buffer) == 0
    assert "timestamp" not in seen[0]


def test_clear_breadcrumbs(client, make_breadcrumbs):
    client.set_tag("a", "b").set_breadcrumbs(make_breadcrumbs(3))
    client.clear_breadcrumbs()

    assert client.state == {"tags": {"a": "b"}}


@pytest.mark.parametrize(
    "value,expected",
    [
        (None, DEFAULT_MAX_BREADCRUMBS),
        (-1, DEFAULT_MAX_BREADCRUMBS),
        (-100, DEFAULT_MAX_BREADCRUMBS),
        (0, 0),
        (10, 10),
        (250, 250),
        (1.5, DEFAULT_MAX_BREADCRUMBS),
        ("10", DEFAULT_MAX_BREADCRUMBS),
        (True, DEFAULT_MAX_BREADCRUMBS),
    ],
)
def test_resolve_max_breadcrumbs(value, expected):
    assert resolve_max_breadcrumbs(value) == expected


@pytest.mark.parametrize("capacity", [0, 1, 3, 10])
@pytest.mark.parametrize("amount", [0, 1, 5, 25])
def test_push_and_replace_all_agree(capacity, amount, make_breadcrumbs):
    def before_breadcrumb(crumb):
        # drop every third breadcrumb
        if int(crumb["event_id"][2:]) % 3 == 0:
            return None
        return crumb

    crumbs = make_breadcrumbs(amount)

    pushed = BreadcrumbBuffer(capacity, before_breadcrumb)
    for crumb in crumbs:
        pushed.push(crumb)

    replaced = BreadcrumbBuffer(capacity, before_breadcrumb)
    replaced.replace_all(crumbs)

    accepted = [
        crumb["event_id"]
        for crumb in crumbs
        if int(crumb["event_id"][2:]) % 3 != 0
    ]
    expected = accepted[len(accepted) - capacity :] if capacity else []

    assert [crumb["event_id"] for crumb in pushed.read()] == expected
    assert [crumb["event_id"] for crumb in replaced.read()] == expected
    assert len(pushed) <= capacity


def test_buffer_copy_is_independent(make_breadcrumbs):
    buffer = BreadcrumbBuffer(5)
    buffer.replace_all(make_breadcrumbs(2))

    other = buffer.copy()
    assert other.read() == buffer.read()
    assert other.read() is not buffer.read()
    assert other.read()[0] is not buffer.read()[0]

    other.push({"event_id": "new", "type": "console"})
    other.read()[0]["type"] = "http"

    assert crumb_ids(buffer.read()) == "id0,id1"
    assert buffer.read()[0]["type"] == "console"
    assert other.capacity == buffer.capacity


def test_failing_hook_keeps_previous_history():
    def before_breadcrumb(crumb):
        if crumb["event_id"] == "bad":
            raise ZeroDivisionError()
        return crumb

    client = Client(before_breadcrumb=before_breadcrumb)
    client.set_breadcrumbs(
        [
            {"event_id": "a", "type": "console"},
            {"event_id": "b", "type": "console"},
        ]
    )

    with pytest.raises(ZeroDivisionError):
        client.set_breadcrumbs(
            [
                {"event_id": "c", "type": "console"},
                {"event_id": "bad", "type": "console"},
            ]
        )

    assert crumb_ids(client.state["breadcrumbs"]) == "a,b"

    client.add_breadcrumb({"event_id": "d", "type": "console"})

    assert crumb_ids(client.state["breadcrumbs"]) == "a,b,d"
    assert client.state["breadcrumbs"] is client.scope._breadcrumbs.read()


def test_replace_all_is_atomic():
    def before_breadcrumb(crumb):
        if crumb["event_id"] == "bad":
            raise ZeroDivisionError()
        return crumb

    buffer = BreadcrumbBuffer(5, before_breadcrumb)
    buffer.push({"event_id": "a", "type": "console"})
    history = buffer.read()

    with pytest.raises(ZeroDivisionError):
        buffer.replace_all(
            [
                {"event_id": "c", "type": "console"},
                {"event_id": "bad", "type": "console"},
            ]
        )

    assert buffer.read() is history
    assert crumb_ids(buffer.read()) == "a"

from micro_sentry.client import Client

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any, Callable, Iterable, Optional, TypeVar

    from micro_sentry._types import Breadcrumb, Error, Level

    T = TypeVar("T")


# When changing this, update __all__ in __init__.py too
__all__ = [
    "init",
    "add_breadcrumb",
    "capture_exception",
    "capture_message",
    "clear_state",
    "flush",
    "get_client",
    "is_initialized",
    "report",
    "set_breadcrumbs",
    "set_extra",
    "set_extras",
    "set_release",
    "set_tag",
    "set_tags",
    "set_user",
    "with_scope",
]


# The process-wide client used by the functions in this module
_client: "Optional[Client]" = None


def init(*args: "Any", **kwargs: "Any") -> "Client":
    """Initializes the process-wide client. Takes the same arguments as
    :py:class:`micro_sentry.Client`. A previously installed client is closed.
    """
    global _client

    client = Client(*args, **kwargs)
    old_client = _client
    _client = client

    if old_client is not None:
        old_client.close()

    return client


def get_client() -> "Optional[Client]":
    return _client


def is_initialized() -> bool:
    """
    Returns whether :py:func:`init` has been called and the client has a
    transport to send events with.
    """
    return _client is not None and _client.transport is not None


def _set_client(client: "Optional[Client]") -> None:
    global _client
    _client = client


def capture_exception(error: "Optional[Any]" = None) -> "Optional[str]":
    """See :py:meth:`micro_sentry.Client.capture_exception`."""
    if _client is None:
        return None
    return _client.capture_exception(error)


def report(error: "Error") -> "Optional[str]":
    """See :py:meth:`micro_sentry.Client.report`."""
    if _client is None:
        return None
    return _client.report(error)


def capture_message(message: str, level: "Optional[Level]" = None) -> "Optional[str]":
    """See :py:meth:`micro_sentry.Client.capture_message`."""
    if _client is None:
        return None
    return _client.capture_message(message, level)


def add_breadcrumb(crumb: "Optional[Breadcrumb]" = None, **kwargs: "Any") -> None:
    if _client is not None:
        _client.add_breadcrumb(crumb, **kwargs)


def set_breadcrumbs(crumbs: "Iterable[Breadcrumb]") -> None:
    if _client is not None:
        _client.set_breadcrumbs(crumbs)


def set_tag(key: str, value: "Any") -> None:
    if _client is not None:
        _client.set_tag(key, value)


def set_tags(tags: "Mapping[str, Any]") -> None:
    if _client is not None:
        _client.set_tags(tags)


def set_extra(key: str, value: "Any") -> None:
    if _client is not None:
        _client.set_extra(key, value)


def set_extras(extras: "Mapping[str, Any]") -> None:
    if _client is not None:
        _client.set_extras(extras)


def set_user(value: "Optional[Mapping[str, Any]]") -> None:
    if _client is not None:
        _client.set_user(value)


def set_release(value: "Optional[str]") -> None:
    if _client is not None:
        _client.set_release(value)


def clear_state() -> None:
    if _client is not None:
        _client.clear_state()


def with_scope(callback: "Callable[[Client], T]") -> "Optional[T]":
    """See :py:meth:`micro_sentry.Client.with_scope`. Without a client the
    callback is not called."""
    if _client is None:
        return None
    return _client.with_scope(callback)


def flush(
    timeout: "Optional[float]" = None,
    callback: "Optional[Callable[[int, float], None]]" = None,
) -> None:
    if _client is not None:
        _client.flush(timeout=timeout, callback=callback)

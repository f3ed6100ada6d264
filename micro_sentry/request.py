"""
Ambient request context.

Web frameworks (or the application) bind the request currently being handled,
and every event built while it is bound gets a ``request`` block. The binding
lives in a context variable, so concurrent requests handled by different
threads or asyncio tasks do not see each other.
"""

from contextlib import contextmanager
from contextvars import ContextVar
from urllib.parse import urlsplit, urlunsplit

from micro_sentry.utils import get_default_user_agent

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from contextvars import Token
    from typing import Any, Dict, Iterator, Optional

    from micro_sentry._types import RequestInfo


_current_request: "ContextVar[Optional[RequestInfo]]" = ContextVar(
    "micro_sentry_current_request", default=None
)


def set_request(url: str, user_agent: "Optional[str]" = None) -> "Token[Any]":
    """Binds a request to the current context until it is reset with the
    returned token (see :py:func:`reset_request`)."""
    info: "RequestInfo" = {"url": url, "user_agent": user_agent}
    return _current_request.set(info)


def reset_request(token: "Token[Any]") -> None:
    _current_request.reset(token)


@contextmanager
def use_request(
    url: str, user_agent: "Optional[str]" = None
) -> "Iterator[RequestInfo]":
    """
    Binds a request for the duration of the `with` block.

    :param url: The requested URL, either absolute or just path and query
        string.

    :param user_agent: The client's user agent. Defaults to this library's
        own user agent.
    """
    token = set_request(url, user_agent)
    try:
        yield _current_request.get()  # type: ignore
    finally:
        reset_request(token)


def get_request_info() -> "Optional[RequestInfo]":
    return _current_request.get()


def query_string_from_url(url: str) -> str:
    """Returns the query string of an absolute URL or of a path with a query
    string, without the leading ``?``."""
    return urlsplit(url).query


def url_without_query(url: str) -> str:
    parts = urlsplit(url)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, "", ""))


def request_data(info: "Optional[RequestInfo]") -> "Optional[Dict[str, Any]]":
    """Builds the ``request`` block of an event, or `None` without a request."""
    if not info or not info.get("url"):
        return None

    url = info["url"]
    rv: "Dict[str, Any]" = {
        "url": url_without_query(url),
        "headers": {"User-Agent": info.get("user_agent") or get_default_user_agent()},
    }

    query_string = query_string_from_url(url)
    if query_string:
        rv["query_string"] = query_string

    return rv

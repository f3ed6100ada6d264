import os
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from copy import copy

from micro_sentry.consts import DEFAULT_OPTIONS, SDK_NAME, VERSION, ClientConstructor
from micro_sentry.event import EventBuilder
from micro_sentry.scope import Scope
from micro_sentry.transport import make_transport
from micro_sentry.utils import DROP, Dsn, exc_info_from_error, logger, run_hook

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any, Callable, Dict, Iterable, Iterator, Optional, TypeVar

    from micro_sentry._types import (
        Breadcrumb,
        Error,
        Event,
        ExcInfo,
        Level,
        ScopeState,
    )
    from micro_sentry.utils import Auth

    T = TypeVar("T")


_client_init_debug: "ContextVar[bool]" = ContextVar("client_init_debug")


def _get_options(*args: "Optional[str]", **kwargs: "Any") -> "Dict[str, Any]":
    if args and (isinstance(args[0], (bytes, str)) or args[0] is None):
        dsn: "Optional[str]" = args[0]
        args = args[1:]
    else:
        dsn = None

    if len(args) > 1:
        raise TypeError("Only single positional argument is expected")

    rv = dict(DEFAULT_OPTIONS)
    options = dict(*args, **kwargs)
    if dsn is not None and options.get("dsn") is None:
        options["dsn"] = dsn

    for key, value in options.items():
        if key not in rv:
            raise TypeError("Unknown option %r" % (key,))
        rv[key] = value

    if rv["dsn"] is None:
        rv["dsn"] = os.environ.get("SENTRY_DSN")

    if rv["release"] is None:
        rv["release"] = os.environ.get("SENTRY_RELEASE")

    if rv["environment"] is None:
        rv["environment"] = os.environ.get("SENTRY_ENVIRONMENT")

    return rv


class _Client:
    """The client is responsible for holding the scope, capturing events and
    forwarding them to sentry through the configured transport. It takes
    the client options as keyword arguments and optionally the DSN as first
    argument.

    Every capture goes through the same steps: the event is built from the
    current scope, passed to `before_send` and, unless that hook drops it,
    handed to :py:meth:`send`. After a send the scope is cleared; a dropped
    event leaves the scope as it was.
    """

    def __init__(self, *args: "Any", **kwargs: "Any") -> None:
        old_debug = _client_init_debug.get(False)
        try:
            self.options = options = get_options(*args, **kwargs)
            _client_init_debug.set(options["debug"])

            # a malformed DSN fails here, even with a custom transport
            self.parsed_dsn: "Optional[Dsn]" = (
                Dsn(options["dsn"]) if options["dsn"] else None
            )
            self.transport = make_transport(options)

            self._release: "Optional[str]" = options["release"]
            self._scope = Scope(
                max_breadcrumbs=options["max_breadcrumbs"],
                before_breadcrumb=options["before_breadcrumb"],
            )
            self._event_builder = EventBuilder(
                environment=options["environment"],
                stacktrace_extractor=options["stacktrace_extractor"],
            )

            logger.debug(
                "Setting up client with dsn=%s release=%s max_breadcrumbs=%s",
                self.dsn,
                self._release,
                self._scope.max_breadcrumbs,
            )
        finally:
            _client_init_debug.set(old_debug)

    def __copy__(self) -> "_Client":
        rv: "_Client" = object.__new__(self.__class__)

        rv.options = dict(self.options)
        rv.parsed_dsn = self.parsed_dsn
        rv.transport = self.transport
        rv._release = self._release
        rv._scope = self._scope.fork()
        rv._event_builder = self._event_builder

        return rv

    def __repr__(self) -> str:
        return "<%s dsn=%r release=%r>" % (
            self.__class__.__name__,
            self.dsn,
            self._release,
        )

    @property
    def dsn(self) -> "Optional[str]":
        """Returns the configured DSN as string."""
        return self.options["dsn"]

    @property
    def api_url(self) -> "Optional[str]":
        """The endpoint events are posted to, derived from the DSN."""
        auth = self._get_auth()
        return auth.store_api_url if auth is not None else None

    @property
    def auth_header(self) -> "Optional[str]":
        """The value of the `X-Sentry-Auth` header, derived from the DSN."""
        auth = self._get_auth()
        return auth.to_header() if auth is not None else None

    def _get_auth(self) -> "Optional[Auth]":
        if self.parsed_dsn is None:
            return None
        return self.parsed_dsn.to_auth("%s/%s" % (SDK_NAME, VERSION))

    @property
    def release(self) -> "Optional[str]":
        return self._release

    @property
    def scope(self) -> "Scope":
        return self._scope

    @property
    def state(self) -> "ScopeState":
        """The current scope state. Keys are only present once written."""
        return self._scope.state

    def set_release(self, value: "Optional[str]") -> "_Client":
        """Overrides the release. The override survives :py:meth:`clear_state`."""
        self._release = value
        return self

    def set_tag(self, key: str, value: "Any") -> "_Client":
        self._scope.set_tag(key, value)
        return self

    def set_tags(self, tags: "Mapping[str, Any]") -> "_Client":
        self._scope.set_tags(tags)
        return self

    def remove_tag(self, key: str) -> "_Client":
        self._scope.remove_tag(key)
        return self

    def set_extra(self, key: str, value: "Any") -> "_Client":
        self._scope.set_extra(key, value)
        return self

    def set_extras(self, extras: "Mapping[str, Any]") -> "_Client":
        self._scope.set_extras(extras)
        return self

    def remove_extra(self, key: str) -> "_Client":
        self._scope.remove_extra(key)
        return self

    def set_user(self, value: "Optional[Mapping[str, Any]]") -> "_Client":
        self._scope.set_user(value)
        return self

    def add_breadcrumb(
        self, crumb: "Optional[Breadcrumb]" = None, **kwargs: "Any"
    ) -> "_Client":
        self._scope.add_breadcrumb(crumb, **kwargs)
        return self

    def set_breadcrumbs(self, crumbs: "Iterable[Breadcrumb]") -> "_Client":
        self._scope.set_breadcrumbs(crumbs)
        return self

    def clear_breadcrumbs(self) -> "_Client":
        self._scope.clear_breadcrumbs()
        return self

    def clear_state(self) -> "_Client":
        """Removes tags, extra, user and breadcrumbs. The release is kept."""
        self._scope.clear()
        return self

    def clone(self) -> "_Client":
        """Returns a client with the same configuration and release, and an
        independent copy of the current state."""
        return copy(self)

    def with_scope(self, callback: "Callable[[_Client], T]") -> "T":
        """Calls `callback` with a clone of this client and returns its
        result. Nothing the callback does to the clone reaches this client."""
        return callback(self.clone())

    @contextmanager
    def new_scope(self) -> "Iterator[_Client]":
        """Context manager flavor of :py:meth:`with_scope`.

        Example::

            with client.new_scope() as scoped:
                scoped.set_tag("job", job_id)
                scoped.capture_message("job started")
        """
        yield self.clone()

    def report(self, error: "Error") -> "Optional[str]":
        """Reports an exception or exception-like object.

        :param error: A Python exception, or any object or mapping with
            `name`, `message` and `stack`.

        :returns: The id of the sent event, or `None` if `before_send` dropped it.
        """
        event = self._event_builder.build_from_exception(
            error, scope=self._scope, release=self._release
        )
        return self._dispatch(event)

    def capture_exception(self, error: "Optional[Any]" = None) -> "Optional[str]":
        """Captures an exception.

        :param error: An exception or exc_info tuple to capture. If `None`,
            `sys.exc_info()` will be used.
        """
        if error is None:
            error = sys.exc_info()

        if isinstance(error, tuple):
            exc_info: "ExcInfo" = exc_info_from_error(error)
            if exc_info[1] is None:
                logger.debug("capture_exception called without an exception")
                return None
            error = exc_info[1]

        return self.report(error)

    def capture_message(
        self, message: str, level: "Optional[Level]" = None
    ) -> "Optional[str]":
        """Captures a message.

        :param message: The string to send as the message.

        :param level: If no level is provided, the default level is `info`.
        """
        event = self._event_builder.build_from_message(
            message, level, scope=self._scope, release=self._release
        )
        return self._dispatch(event)

    def _dispatch(self, event: "Event") -> "Optional[str]":
        result = run_hook(self.options["before_send"], event)
        if result is DROP:
            logger.info("before send dropped event (%s)", event.get("event_id"))
            return None

        event = result.value  # type: ignore
        try:
            self.send(event)
        finally:
            self.clear_state()

        return event.get("event_id")

    def send(self, event: "Event") -> None:
        """Hands a ready event to the transport."""
        if self.transport is None:
            logger.debug(
                "No transport configured, event %s not sent", event.get("event_id")
            )
            return
        self.transport.capture_event(event)

    def close(
        self,
        timeout: "Optional[float]" = None,
        callback: "Optional[Callable[[int, float], None]]" = None,
    ) -> None:
        """
        Close the client and shut down the transport. Arguments have the same
        semantics as `self.flush()`.
        """
        if self.transport is not None:
            self.flush(timeout=timeout, callback=callback)
            self.transport.kill()
            self.transport = None

    def flush(
        self,
        timeout: "Optional[float]" = None,
        callback: "Optional[Callable[[int, float], None]]" = None,
    ) -> None:
        """
        Wait `timeout` seconds for the current events to be sent. If no
        `timeout` is provided, the `shutdown_timeout` option value is used.

        The `callback` is invoked with two arguments: the number of pending
        events and the configured timeout.
        """
        if self.transport is not None:
            if timeout is None:
                timeout = self.options["shutdown_timeout"]
            self.transport.flush(timeout=timeout, callback=callback)

    def __enter__(self) -> "_Client":
        return self

    def __exit__(self, exc_type: "Any", exc_value: "Any", tb: "Any") -> None:
        self.close()


if TYPE_CHECKING:
    # Make mypy, PyCharm and other static analyzers think `get_options` is a
    # type to have nicer autocompletion for params.
    #
    # Use `ClientConstructor` to define the argument types of `init` and
    # `Dict[str, Any]` to tell static analyzers about the return type.

    class get_options(ClientConstructor, Dict[str, Any]):  # noqa: N801
        pass

    class Client(ClientConstructor, _Client):
        pass

else:
    # Alias `get_options` for actual usage. Go through the lambda indirection
    # to throw PyCharm off of the weakly typed signature (it would otherwise
    # discover both the weakly typed signature of `_init` and our faked `init`
    # type).

    get_options = (lambda: _get_options)()
    Client = (lambda: _Client)()

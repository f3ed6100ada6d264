import itertools
from enum import Enum

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any, Callable, Dict, Optional, Union

    import micro_sentry

    from micro_sentry._types import (
        BreadcrumbProcessor,
        Event,
        EventProcessor,
        StacktraceExtractor,
    )


DEFAULT_QUEUE_SIZE = 100
DEFAULT_MAX_BREADCRUMBS = 100
DEFAULT_SHUTDOWN_TIMEOUT = 2

PLATFORM = "python"


class Severity(str, Enum):
    """Event and breadcrumb importance levels, serialized by value."""

    FATAL = "fatal"
    # "critical" is an alias of "fatal" recognized by the server
    CRITICAL = "critical"
    ERROR = "error"
    WARNING = "warning"
    LOG = "log"
    INFO = "info"
    DEBUG = "debug"

    def __str__(self) -> str:
        return self.value


# This type exists to trick mypy and PyCharm into thinking `init` and `Client`
# take these arguments (even though they take opaque **kwargs)
class ClientConstructor:

    def __init__(
        self,
        dsn: "Optional[str]" = None,
        *,
        release: "Optional[str]" = None,
        environment: "Optional[str]" = None,
        max_breadcrumbs: "Optional[int]" = DEFAULT_MAX_BREADCRUMBS,
        before_breadcrumb: "Optional[BreadcrumbProcessor]" = None,
        before_send: "Optional[EventProcessor]" = None,
        transport: "Optional[Union[micro_sentry.transport.Transport, type, Callable[[Event], None]]]" = None,
        transport_queue_size: int = DEFAULT_QUEUE_SIZE,
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
        http_proxy: "Optional[str]" = None,
        https_proxy: "Optional[str]" = None,
        ca_certs: "Optional[str]" = None,
        stacktrace_extractor: "Optional[StacktraceExtractor]" = None,
        debug: bool = False,
    ) -> None:
        """Initialize the client with the given parameters. All parameters
        described here can be used in a call to `micro_sentry.init()`.

        :param dsn: The DSN tells the client where to send the events.

            If this option is not set, events are built and pass through
            `before_send`, but nothing is sent. Falls back to the
            `SENTRY_DSN` environment variable. An unparsable DSN raises
            :py:class:`micro_sentry.utils.BadDsn` right away.

        :param release: The release version attached to every event. It can be
            overridden later with :py:meth:`micro_sentry.Client.set_release`.
            Falls back to the `SENTRY_RELEASE` environment variable.

        :param environment: Falls back to the `SENTRY_ENVIRONMENT` environment
            variable.

        :param max_breadcrumbs: How many breadcrumbs are kept. Negative or
            non-integer values fall back to the default of 100, `0` disables
            breadcrumbs altogether.

        :param before_breadcrumb: Called with every breadcrumb before it is
            stored. Return the (possibly modified) breadcrumb to keep it or
            `None` to drop it.

        :param before_send: Called with every event before it is handed to the
            transport. Return the (possibly modified) event to send it or `None`
            to drop it. Dropped events leave the scope untouched.

        :param transport: A :py:class:`micro_sentry.transport.Transport`
            instance or subclass, or a plain callable taking the event.

        :param transport_queue_size: Capacity of the HTTP transport's queue.

        :param shutdown_timeout: Default number of seconds `flush` and `close`
            wait for pending events.

        :param http_proxy: Proxy for plain HTTP DSNs.

        :param https_proxy: Proxy for HTTPS DSNs.

        :param ca_certs: Path to a CA bundle, `certifi` is used otherwise.

        :param stacktrace_extractor: Callable turning an exception-like object
            into a list of frame dicts. The default handles real Python
            exceptions and yields no frames for anything else.

        :param debug: Print the client's internal log to stderr.
        """
        pass


def _get_default_options() -> "Dict[str, Any]":
    import inspect

    a = inspect.getfullargspec(ClientConstructor.__init__)
    defaults = a.defaults or ()
    kwonlydefaults = a.kwonlydefaults or {}

    return dict(
        itertools.chain(
            zip(a.args[-len(defaults) :], defaults),
            kwonlydefaults.items(),
        )
    )


DEFAULT_OPTIONS = _get_default_options()
del _get_default_options


VERSION = "0.1.0"

SDK_NAME = "micro-sentry.python"

SDK_INFO = {
    "name": SDK_NAME,
    "version": VERSION,
}

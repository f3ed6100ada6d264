from collections.abc import Mapping

from micro_sentry.consts import PLATFORM, SDK_INFO, Severity
from micro_sentry.request import get_request_info, request_data
from micro_sentry.utils import (
    extract_stacktrace,
    get_type_name,
    new_event_id,
    now_timestamp,
    safe_str,
)

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any, Dict, Optional, Tuple

    from micro_sentry._types import Error, Event, Level, StacktraceExtractor
    from micro_sentry.scope import Scope


def describe_error(error: "Error") -> "Tuple[str, str]":
    """Returns the ``(type, value)`` pair of an exception-like object.

    Real exceptions are described by their class name and message. Anything
    else must provide ``name`` and ``message``, either as keys or as
    attributes.
    """
    if isinstance(error, BaseException):
        return get_type_name(type(error)) or "Error", safe_str(error)

    if isinstance(error, Mapping):
        name = error.get("name")
        message = error.get("message")
    else:
        name = getattr(error, "name", None)
        message = getattr(error, "message", None)

    return (
        safe_str(name) if name is not None else "Error",
        safe_str(message) if message is not None else "",
    )


def serialize_level(level: "Optional[Level]") -> str:
    if level is None:
        return Severity.INFO.value
    if isinstance(level, Severity):
        return level.value
    return str(level)


class EventBuilder:
    """Turns exceptions and messages into events ready to be handed to a
    transport.

    Every event carries a fresh ``event_id`` and ``timestamp``, the platform,
    SDK information, the release and the ``request`` block of the request
    bound to the current context. The scope's tags, extra, user and
    breadcrumbs are copied in when present.
    """

    def __init__(
        self,
        environment: "Optional[str]" = None,
        stacktrace_extractor: "Optional[StacktraceExtractor]" = None,
    ) -> None:
        self.environment = environment
        self.stacktrace_extractor = stacktrace_extractor or extract_stacktrace

    def _build_common(
        self, scope: "Optional[Scope]", release: "Optional[str]"
    ) -> "Event":
        event: "Event" = {
            "event_id": new_event_id(),
            "timestamp": now_timestamp(),
            "platform": PLATFORM,
            "sdk": dict(SDK_INFO),
        }

        if release is not None:
            event["release"] = str(release).strip()

        if self.environment is not None:
            event["environment"] = str(self.environment).strip()

        request = request_data(get_request_info())
        if request is not None:
            event["request"] = request

        if scope is not None:
            event = scope.apply_to_event(event)

        return event

    def build_from_exception(
        self,
        error: "Error",
        scope: "Optional[Scope]" = None,
        release: "Optional[str]" = None,
    ) -> "Event":
        ty, value = describe_error(error)
        frames = self.stacktrace_extractor(error) or []

        exception: "Dict[str, Any]" = {
            "type": ty,
            "value": value,
            "stacktrace": {"frames": list(frames)},
        }

        event = self._build_common(scope, release)
        event["exception"] = {"values": [exception]}
        return event

    def build_from_message(
        self,
        message: str,
        level: "Optional[Level]" = None,
        scope: "Optional[Scope]" = None,
        release: "Optional[str]" = None,
    ) -> "Event":
        event = self._build_common(scope, release)
        event["message"] = message
        event["level"] = serialize_level(level)  # type: ignore
        return event

from typing import TYPE_CHECKING

# Re-exported for compat, since code out there in the wild might use this variable.
MYPY = TYPE_CHECKING


if TYPE_CHECKING:
    from collections.abc import MutableMapping
    from types import TracebackType
    from typing import Any, Callable, Dict, List, Optional, Type, Union

    from typing_extensions import Literal, Protocol, TypedDict

    from micro_sentry.consts import Severity

    LogLevelStr = Literal[
        "fatal", "critical", "error", "warning", "log", "info", "debug"
    ]

    Level = Union[Severity, LogLevelStr]

    # Breadcrumbs are open-ended: integrations may add any key
    Breadcrumb = Dict[str, Any]

    Frame = Dict[str, Any]

    ScopeState = TypedDict(
        "ScopeState",
        {
            "tags": Dict[str, str],
            "extra": Dict[str, object],
            "user": Dict[str, object],
            "breadcrumbs": List[Breadcrumb],
        },
        total=False,
    )

    RequestInfo = TypedDict(
        "RequestInfo",
        {
            "url": str,
            "user_agent": Optional[str],
        },
        total=False,
    )

    Event = TypedDict(
        "Event",
        {
            "breadcrumbs": List[Breadcrumb],
            "environment": str,
            "event_id": str,
            "exception": Dict[Literal["values"], List[Dict[str, Any]]],
            "extra": MutableMapping[str, object],
            "level": LogLevelStr,
            "message": str,
            "platform": Literal["python"],
            "release": str,
            "request": Dict[str, object],
            "sdk": Dict[str, str],
            "tags": MutableMapping[str, str],
            "timestamp": float,
            "user": Dict[str, object],
        },
        total=False,
    )

    class ExceptionLike(Protocol):
        name: str
        message: str
        stack: "Optional[str]"

    ExcInfo = Union[
        tuple[Type[BaseException], BaseException, Optional[TracebackType]],
        tuple[None, None, None],
    ]

    Error = Union[BaseException, ExceptionLike, Dict[str, Any]]

    EventProcessor = Callable[[Event], Optional[Event]]
    BreadcrumbProcessor = Callable[[Breadcrumb], Optional[Breadcrumb]]
    StacktraceExtractor = Callable[[Any], List[Frame]]

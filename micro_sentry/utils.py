import json
import linecache
import logging
import os
import sys
import time
import uuid
from collections.abc import Mapping
from contextlib import contextmanager
from urllib.parse import urlsplit

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from types import FrameType, TracebackType
    from typing import Any, Iterator, List, Optional, Union

    from micro_sentry._types import ExcInfo, Frame


# The logger is created here but initialized in the debug support module
logger = logging.getLogger("micro_sentry.errors")

MAX_STRING_LENGTH = 512


@contextmanager
def capture_internal_exceptions() -> "Iterator[None]":
    try:
        yield
    except Exception:
        capture_internal_exception(sys.exc_info())


def capture_internal_exception(exc_info: "Any") -> None:
    """Log an exception that is likely caused by a bug in the client itself."""
    logger.error("Internal error in micro_sentry", exc_info=exc_info)


def new_event_id() -> str:
    return uuid.uuid4().hex


def now_timestamp() -> float:
    """Seconds since the epoch, the unit used for event and breadcrumb timestamps."""
    return time.time()


def json_dumps(data: "Any") -> bytes:
    """Serialize data into a compact JSON representation encoded as UTF-8."""
    return json.dumps(
        data, allow_nan=False, separators=(",", ":"), default=safe_str
    ).encode("utf-8")


class _Drop:
    __slots__ = ()

    def __repr__(self) -> str:
        return "DROP"

    def __bool__(self) -> bool:
        return False


#: Returned by :py:func:`run_hook` when a hook asked to discard its input.
DROP = _Drop()


class Keep:
    """A hook result that carries the value to continue with."""

    __slots__ = ("value",)

    def __init__(self, value: "Any") -> None:
        self.value = value

    def __eq__(self, other: "Any") -> bool:
        if not isinstance(other, Keep):
            return False
        return self.value == other.value

    def __repr__(self) -> str:
        return "Keep(%r)" % (self.value,)


def run_hook(hook: "Any", value: "Any") -> "Union[Keep, _Drop]":
    """Run a user supplied `before_*` hook.

    No hook means the value passes through unchanged, a hook returning `None`
    means the value is dropped. Exceptions raised by the hook propagate.
    """
    if hook is None:
        return Keep(value)

    rv = hook(value)
    if rv is None:
        return DROP
    return Keep(rv)


def copy_structure(value: "Any") -> "Any":
    """Recursively copy mappings and sequences so that no container is shared
    with the original. Leaf values are kept as they are."""
    if isinstance(value, Mapping):
        return {k: copy_structure(v) for k, v in value.items()}
    if isinstance(value, list):
        return [copy_structure(v) for v in value]
    if isinstance(value, tuple):
        return tuple(copy_structure(v) for v in value)
    if isinstance(value, (set, frozenset)):
        return type(value)(value)
    return value


class BadDsn(ValueError):
    """Raised on invalid DSNs."""


class Dsn:
    """Represents a DSN."""

    def __init__(self, value: "Union[Dsn, str]") -> None:
        if isinstance(value, Dsn):
            self.__dict__ = dict(value.__dict__)
            return
        parts = urlsplit(str(value))
        if parts.scheme not in ("http", "https"):
            raise BadDsn("Unsupported scheme %r" % parts.scheme)
        self.scheme = parts.scheme

        if parts.hostname is None:
            raise BadDsn("Missing hostname")
        self.host = parts.hostname

        try:
            port = parts.port
        except ValueError:
            raise BadDsn("Invalid port in DSN")
        if port is None:
            port = self.scheme == "https" and 443 or 80
        self.port: int = port

        if not parts.username:
            raise BadDsn("Missing public key")
        self.public_key = parts.username
        self.secret_key = parts.password

        path = parts.path.rsplit("/", 1)

        try:
            self.project_id = str(int(path.pop()))
        except (ValueError, TypeError):
            raise BadDsn("Invalid project in DSN (%r)" % (parts.path or "")[1:])

        self.path = "/".join(path) + "/"

    @property
    def netloc(self) -> str:
        """The netloc part of a DSN."""
        rv = self.host
        if (self.scheme, self.port) not in (("http", 80), ("https", 443)):
            rv = "%s:%s" % (rv, self.port)
        return rv

    def to_auth(self, client: "Optional[Any]" = None) -> "Auth":
        """Returns the auth info object for this dsn."""
        return Auth(
            scheme=self.scheme,
            host=self.netloc,
            path=self.path,
            project_id=self.project_id,
            public_key=self.public_key,
            secret_key=self.secret_key,
            client=client,
        )

    def __str__(self) -> str:
        return "%s://%s%s@%s%s%s" % (
            self.scheme,
            self.public_key,
            self.secret_key and ":" + self.secret_key or "",
            self.netloc,
            self.path,
            self.project_id,
        )


class Auth:
    """Helper object that represents the auth info."""

    def __init__(
        self,
        scheme: str,
        host: str,
        project_id: str,
        public_key: str,
        secret_key: "Optional[str]" = None,
        version: int = 7,
        client: "Optional[Any]" = None,
        path: str = "/",
    ) -> None:
        self.scheme = scheme
        self.host = host
        self.path = path
        self.project_id = project_id
        self.public_key = public_key
        self.secret_key = secret_key
        self.version = version
        self.client = client

    @property
    def store_api_url(self) -> str:
        """Returns the API url for storing events."""
        return "%s://%s%sapi/%s/store/" % (
            self.scheme,
            self.host,
            self.path,
            self.project_id,
        )

    def to_header(self) -> str:
        """Returns the auth header a string."""
        rv: "List[tuple[str, Any]]" = [
            ("sentry_key", self.public_key),
            ("sentry_version", self.version),
        ]
        if self.client is not None:
            rv.append(("sentry_client", self.client))
        if self.secret_key is not None:
            rv.append(("sentry_secret", self.secret_key))
        return "Sentry " + ", ".join("%s=%s" % (key, value) for key, value in rv)


def get_type_name(cls: "Optional[type]") -> "Optional[str]":
    return getattr(cls, "__qualname__", None) or getattr(cls, "__name__", None)


def get_type_module(cls: "Optional[type]") -> "Optional[str]":
    mod = getattr(cls, "__module__", None)
    if mod not in (None, "builtins", "__builtins__"):
        return mod
    return None


def safe_str(value: "Any") -> str:
    try:
        return str(value)
    except Exception:
        return safe_repr(value)


def safe_repr(value: "Any") -> str:
    try:
        return repr(value)
    except Exception:
        # If e.g. the call to `repr` already fails
        return "<broken repr>"


def slim_string(value: str, length: int = MAX_STRING_LENGTH) -> str:
    if not value:
        return value
    if len(value) > length:
        return value[: length - 3] + "..."
    return value[:length]


def should_hide_frame(frame: "FrameType") -> bool:
    try:
        mod = frame.f_globals["__name__"]
        if mod.startswith("micro_sentry."):
            return True
    except (AttributeError, KeyError):
        pass

    for flag_name in "__traceback_hide__", "__tracebackhide__":
        try:
            if frame.f_locals[flag_name]:
                return True
        except Exception:
            pass

    return False


def iter_stacks(tb: "Optional[TracebackType]") -> "Iterator[TracebackType]":
    tb_: "Optional[TracebackType]" = tb
    while tb_ is not None:
        if not should_hide_frame(tb_.tb_frame):
            yield tb_
        tb_ = tb_.tb_next


def filename_for_module(
    module: "Optional[str]", abs_path: "Optional[str]"
) -> "Optional[str]":
    if not abs_path or not module:
        return abs_path

    try:
        if abs_path.endswith(".pyc"):
            abs_path = abs_path[:-1]

        base_module = module.split(".", 1)[0]
        if base_module == module:
            return os.path.basename(abs_path)

        base_module_path = sys.modules[base_module].__file__
        if not base_module_path:
            return abs_path

        return abs_path.split(base_module_path.rsplit(os.sep, 2)[0], 1)[-1].lstrip(
            os.sep
        )
    except Exception:
        return abs_path


def serialize_frame(frame: "FrameType", tb_lineno: "Optional[int]" = None) -> "Frame":
    f_code = getattr(frame, "f_code", None)
    if not f_code:
        abs_path = None
        function = None
    else:
        abs_path = frame.f_code.co_filename
        function = frame.f_code.co_name
    try:
        module = frame.f_globals["__name__"]
    except Exception:
        module = None

    if tb_lineno is None:
        tb_lineno = frame.f_lineno

    rv: "Frame" = {
        "filename": filename_for_module(module, abs_path) or None,
        "abs_path": os.path.abspath(abs_path) if abs_path else None,
        "function": function or "<unknown>",
        "module": module,
        "lineno": tb_lineno,
    }

    if abs_path and tb_lineno:
        context_line = linecache.getline(abs_path, tb_lineno)
        if context_line:
            rv["context_line"] = slim_string(context_line.strip("\r\n"))

    return rv


def frames_from_traceback(tb: "Optional[TracebackType]") -> "List[Frame]":
    return [
        serialize_frame(tb_.tb_frame, tb_lineno=tb_.tb_lineno)
        for tb_ in iter_stacks(tb)
    ]


def exc_info_from_error(error: "Union[BaseException, ExcInfo]") -> "ExcInfo":
    if isinstance(error, tuple) and len(error) == 3:
        exc_type, exc_value, tb = error
    elif isinstance(error, BaseException):
        tb = getattr(error, "__traceback__", None)
        if tb is not None:
            exc_type = type(error)
            exc_value = error
        else:
            exc_type, exc_value, tb = sys.exc_info()
            if exc_value is not error:
                tb = None
                exc_value = error
                exc_type = type(error)

    else:
        raise ValueError(
            "Expected an exception or an exc_info tuple, got %r" % (error,)
        )

    return exc_type, exc_value, tb


def extract_stacktrace(error: "Any") -> "List[Frame]":
    """Default stack trace extractor.

    Real Python exceptions yield their traceback frames, oldest first.
    Anything else (for instance a mapping carrying a foreign `stack` string)
    yields no frames.
    """
    if not isinstance(error, BaseException):
        return []

    frames: "List[Frame]" = []
    with capture_internal_exceptions():
        _, _, tb = exc_info_from_error(error)
        frames = frames_from_traceback(tb)
    return frames


def get_default_user_agent() -> str:
    from micro_sentry.consts import SDK_NAME, VERSION

    return "%s/%s Python/%d.%d" % (
        SDK_NAME,
        VERSION,
        sys.version_info[0],
        sys.version_info[1],
    )

from micro_sentry.client import Client
from micro_sentry.consts import VERSION, Severity  # noqa
from micro_sentry.request import use_request
from micro_sentry.scope import Scope
from micro_sentry.transport import HttpTransport, Transport

from micro_sentry.api import *  # noqa

__all__ = [  # noqa
    "Client",
    "HttpTransport",
    "Scope",
    "Severity",
    "Transport",
    "use_request",
    # From micro_sentry.api
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

# Initialize the debug support after everything is loaded
from micro_sentry.debug import init_debug_support  # noqa: E402

init_debug_support()
del init_debug_support

import logging
import sys

from micro_sentry import api
from micro_sentry.client import _client_init_debug
from micro_sentry.utils import logger

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from logging import LogRecord


class _ClientBasedFilter(logging.Filter):
    def filter(self, record: "LogRecord") -> bool:
        if _client_init_debug.get(False):
            return True

        client = api.get_client()
        return client is not None and bool(client.options["debug"])


def init_debug_support() -> None:
    if not logger.handlers:
        configure_logger()


def configure_logger() -> None:
    _handler = logging.StreamHandler(sys.stderr)
    _handler.setFormatter(
        logging.Formatter(" [micro-sentry] %(levelname)s: %(message)s")
    )
    logger.addHandler(_handler)
    logger.setLevel(logging.DEBUG)
    logger.addFilter(_ClientBasedFilter())

import gzip
import io
from urllib.request import getproxies

import certifi
import urllib3

from micro_sentry.consts import SDK_NAME, VERSION
from micro_sentry.utils import (
    Dsn,
    capture_internal_exceptions,
    json_dumps,
    logger,
)
from micro_sentry.worker import BackgroundWorker

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any, Callable, Dict, Optional, Type, Union

    from urllib3.poolmanager import PoolManager, ProxyManager

    from micro_sentry._types import Event


class Transport:
    """Baseclass for all transports.

    A transport is used to send an event to sentry.
    """

    parsed_dsn: "Optional[Dsn]" = None

    def __init__(self, options: "Optional[Dict[str, Any]]" = None) -> None:
        self.options = options
        if options and options["dsn"] is not None and options["dsn"]:
            self.parsed_dsn = Dsn(options["dsn"])
        else:
            self.parsed_dsn = None

    def capture_event(self, event: "Event") -> None:
        """
        This gets invoked with the event dictionary when an event should
        be sent to sentry.
        """
        raise NotImplementedError()

    def flush(
        self,
        timeout: float,
        callback: "Optional[Any]" = None,
    ) -> None:
        """Wait `timeout` seconds for the current events to be sent out."""
        pass

    def kill(self) -> None:
        """Forcefully kills the transport."""
        pass


class HttpTransport(Transport):
    """The default HTTP transport.

    Events are gzipped and posted to the store endpoint from a background
    thread; delivery problems are logged and otherwise ignored.
    """

    def __init__(self, options: "Dict[str, Any]") -> None:
        Transport.__init__(self, options)
        assert self.parsed_dsn is not None
        self._worker = BackgroundWorker(queue_size=options["transport_queue_size"])
        self._auth = self.parsed_dsn.to_auth("%s/%s" % (SDK_NAME, VERSION))

        self._pool = self._make_pool(
            self.parsed_dsn,
            http_proxy=options["http_proxy"],
            https_proxy=options["https_proxy"],
            ca_certs=options["ca_certs"],
        )

    def _send_request(self, body: bytes, headers: "Dict[str, str]") -> None:
        headers.update(
            {
                "User-Agent": str(self._auth.client),
                "X-Sentry-Auth": str(self._auth.to_header()),
            }
        )
        response = self._pool.request(
            "POST",
            str(self._auth.store_api_url),
            body=body,
            headers=headers,
        )

        try:
            if response.status >= 300 or response.status < 200:
                logger.error(
                    "Unexpected status code: %s (body: %s)",
                    response.status,
                    response.data,
                )
        finally:
            response.close()

    def _send_event(self, event: "Event") -> None:
        body = io.BytesIO()
        with gzip.GzipFile(fileobj=body, mode="w") as f:
            f.write(json_dumps(event))

        assert self.parsed_dsn is not None
        logger.debug(
            "Sending event, level:%s event_id:%s project:%s host:%s",
            event.get("level") or "null",
            event.get("event_id") or "null",
            self.parsed_dsn.project_id,
            self.parsed_dsn.host,
        )
        self._send_request(
            body.getvalue(),
            headers={"Content-Type": "application/json", "Content-Encoding": "gzip"},
        )

    def _get_pool_options(self, ca_certs: "Optional[Any]") -> "Dict[str, Any]":
        return {
            "num_pools": 2,
            "cert_reqs": "CERT_REQUIRED",
            "ca_certs": ca_certs or certifi.where(),
        }

    def _in_no_proxy(self, parsed_dsn: "Dsn") -> bool:
        no_proxy = getproxies().get("no")
        if not no_proxy:
            return False
        for host in no_proxy.split(","):
            host = host.strip()
            if parsed_dsn.host.endswith(host) or parsed_dsn.netloc.endswith(host):
                return True
        return False

    def _make_pool(
        self,
        parsed_dsn: "Dsn",
        http_proxy: "Optional[str]",
        https_proxy: "Optional[str]",
        ca_certs: "Optional[Any]",
    ) -> "Union[PoolManager, ProxyManager]":
        proxy = None
        no_proxy = self._in_no_proxy(parsed_dsn)

        # try HTTPS first
        if parsed_dsn.scheme == "https" and (https_proxy != ""):
            proxy = https_proxy or (not no_proxy and getproxies().get("https"))

        # maybe fallback to HTTP proxy
        if not proxy and (http_proxy != ""):
            proxy = http_proxy or (not no_proxy and getproxies().get("http"))

        opts = self._get_pool_options(ca_certs)

        if proxy:
            return urllib3.ProxyManager(proxy, **opts)
        else:
            return urllib3.PoolManager(**opts)

    def capture_event(self, event: "Event") -> None:
        def send_event_wrapper() -> None:
            with capture_internal_exceptions():
                self._send_event(event)

        if not self._worker.submit(send_event_wrapper):
            logger.warning(
                "Transport queue full, dropped event %s", event.get("event_id")
            )

    def flush(
        self,
        timeout: float,
        callback: "Optional[Any]" = None,
    ) -> None:
        logger.debug("Flushing HTTP transport")
        if timeout > 0:
            self._worker.flush(timeout, callback)

    def kill(self) -> None:
        logger.debug("Killing HTTP transport")
        self._worker.kill()


class _FunctionTransport(Transport):
    def __init__(self, func: "Callable[[Event], None]") -> None:
        Transport.__init__(self)
        self._func = func

    def capture_event(self, event: "Event") -> None:
        self._func(event)
        return None


def make_transport(options: "Dict[str, Any]") -> "Optional[Transport]":
    ref_transport = options["transport"]

    # If no transport is given, we use the http transport class
    if ref_transport is None:
        transport_cls: "Type[Transport]" = HttpTransport
    elif isinstance(ref_transport, Transport):
        return ref_transport
    elif isinstance(ref_transport, type) and issubclass(ref_transport, Transport):
        transport_cls = ref_transport
    elif callable(ref_transport):
        return _FunctionTransport(ref_transport)
    else:
        raise TypeError("Invalid transport %r" % (ref_transport,))

    # if a transport class is given only instantiate it if the dsn is not
    # empty or None
    if options["dsn"]:
        return transport_cls(options)

    return None

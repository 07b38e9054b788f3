"""
Retry/timeout scheduling for pending requests.

Each transmission arms a one-shot timer on the event loop. When it
fires the request is either resent with the same id and payload or,
once retries are used up, failed with a timeout.
"""

import asyncio
import logging
from typing import Callable, Optional, Tuple

from .pending import PendingRequest, PendingRequestTable
from ..core.errors import RequestTimeoutError


logger = logging.getLogger(__name__)


class RetryScheduler:
    """
    Drives the transmit/retry/timeout cycle of registered requests.

    Acts on behalf of the session: *transmit* sends raw bytes and the
    table is the session's own.
    """

    def __init__(
        self,
        table: PendingRequestTable,
        transmit: Callable[[bytes, Tuple[str, int]], None],
        loop: Optional[asyncio.AbstractEventLoop] = None,
        log: Optional[logging.Logger] = None,
    ):
        self._table = table
        self._transmit = transmit
        self._loop = loop
        self._log = log or logger

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def start(self, request: PendingRequest):
        """Send the first transmission and arm its timer."""
        self._send(request)

    def _send(self, request: PendingRequest):
        request.transmissions += 1
        host, port = request.destination
        self._log.debug(
            f"Sending request {request.request_id} to {host}:{port} "
            f"(transmission {request.transmissions})"
        )
        self._transmit(request.payload, request.destination)
        request.timer = self.loop.call_later(request.timeout, self._on_timeout, request)

    def _on_timeout(self, request: PendingRequest):
        request.timer = None

        # Already completed, failed or replaced by a newer entry
        if self._table.get(request.request_id) is not request:
            return

        host, port = request.destination
        if request.retries > 0:
            request.retries -= 1
            self._log.debug(
                f"Request {request.request_id} to {host}:{port} timed out, "
                f"{request.retries} retries left"
            )
            self._send(request)
            return

        error = RequestTimeoutError(
            f"Request to {host}:{port} timed out",
            transmissions=request.transmissions,
        )
        self._table.remove(request.request_id)
        request.fail(error)
        self._log.info(f"{error} after {request.transmissions} transmissions")

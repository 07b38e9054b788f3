"""
MIB walk built from successive GETNEXT requests.

The walk is pulled by its consumer: each step issues exactly one
GETNEXT and waits for it, so there is never more than one request
of a walk in flight.
"""

import asyncio
import logging
from typing import Optional, TYPE_CHECKING

from ..core.errors import OidNotIncreasingError, SessionClosedError
from ..core.models import Message, Oid, OidLike, PduError, ROOT_OID, VarbindType

if TYPE_CHECKING:
    from .session import Session


logger = logging.getLogger(__name__)


class Walk:
    """
    Async iterator over the replies of a walk.

    Usage:
        async for message in session.walk("1.3.6.1.2.1.1"):
            ...

    pause() holds back the next request until resume(). A reply that
    arrives while paused is dropped and the same OID is asked again on
    resume, so nothing is skipped. cancel() ends the walk; a request
    already in flight is left to finish but its reply is ignored.
    """

    def __init__(
        self,
        session: "Session",
        oid: Optional[OidLike] = None,
        target: Optional[str] = None,
        port: Optional[int] = None,
        log: Optional[logging.Logger] = None,
    ):
        self._session = session
        self._oid = Oid.parse(oid) if oid is not None else ROOT_OID
        self._target = target
        self._port = port
        self._log = log or logger
        self._running = asyncio.Event()
        self._running.set()
        self._cancelled = False
        self._finished = False
        self.requests_sent = 0

    @property
    def current_oid(self) -> Oid:
        """OID the next GETNEXT will be issued for."""
        return self._oid

    @property
    def paused(self) -> bool:
        return not self._running.is_set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def finished(self) -> bool:
        return self._finished or self._cancelled

    def pause(self):
        self._running.clear()

    def resume(self):
        self._running.set()

    def cancel(self):
        self._cancelled = True
        # Wake a consumer blocked on pause so it can stop
        self._running.set()

    async def aclose(self):
        self.cancel()

    def session_closed(self):
        """Called by the session on shutdown. Wakes a consumer blocked on pause."""
        self._running.set()

    def __aiter__(self) -> "Walk":
        return self

    async def __anext__(self) -> Message:
        while True:
            if self.finished:
                raise StopAsyncIteration

            await self._running.wait()
            if self._cancelled:
                raise StopAsyncIteration
            if self._session.closed:
                self._finished = True
                raise SessionClosedError("Session is closed")

            self.requests_sent += 1
            try:
                message = await self._session.get_next(
                    self._oid, target=self._target, port=self._port
                )
            except BaseException:
                self._finished = True
                raise

            if self._cancelled:
                self._log.debug(f"Walk cancelled, discarding reply for {self._oid}")
                raise StopAsyncIteration

            if self.paused:
                self._log.debug(f"Walk paused, discarding reply for {self._oid}")
                continue

            if not self._advance(message):
                self._finished = True
                raise StopAsyncIteration
            return message

    def _advance(self, message: Message) -> bool:
        """Move past *message*. Returns False when the walk is over."""
        pdu = message.pdu

        if pdu.error_status == PduError.NO_SUCH_NAME:
            self._log.debug(f"Reached end of walk: {pdu.error_status.name}")
            return False

        if not pdu.varbinds:
            self._log.debug("Reply carried no varbinds, ending walk")
            return False

        last = pdu.varbinds[-1]
        if last.type == VarbindType.END_OF_MIB_VIEW:
            self._log.debug("Reached end of MIB view")
            return False

        if last.oid <= self._oid:
            self._finished = True
            raise OidNotIncreasingError(self._oid, last.oid)

        self._oid = last.oid
        return True

"""Request/response correlation for outgoing SNMP requests."""

import asyncio
from dataclasses import dataclass, field
from typing import Dict, Iterator, Optional, Tuple

from ..core.models import Message


@dataclass(eq=False)
class PendingRequest:
    """State of one in-flight request."""

    request_id: int
    destination: Tuple[str, int]
    payload: bytes
    retries: int
    timeout: float
    future: asyncio.Future
    timer: Optional[asyncio.TimerHandle] = field(default=None, repr=False)
    transmissions: int = 0

    @property
    def done(self) -> bool:
        return self.future.done()

    def resolve(self, message: Message) -> bool:
        """Complete with a reply. Only the first completion counts."""
        if self.future.done():
            return False
        self.future.set_result(message)
        return True

    def fail(self, error: BaseException) -> bool:
        """Complete with an error. Only the first completion counts."""
        if self.future.done():
            return False
        self.future.set_exception(error)
        return True

    def cancel_timer(self):
        if self.timer is not None:
            self.timer.cancel()
            self.timer = None


class PendingRequestTable:
    """
    Tracks outgoing requests and correlates them with replies.

    Must only be touched from the event loop that owns the session.
    """

    def __init__(self):
        self._pending: Dict[int, PendingRequest] = {}

    def register(self, request: PendingRequest):
        """Add a request. Raises ValueError if its id is already in use."""
        if request.request_id in self._pending:
            raise ValueError(f"Request {request.request_id} is already pending")
        self._pending[request.request_id] = request

    def get(self, request_id: int) -> Optional[PendingRequest]:
        return self._pending.get(request_id)

    def complete(self, request_id: int, message: Message) -> bool:
        """
        Resolve the request waiting on *request_id* with *message*.

        Returns True if a matching request was found. The entry is
        removed and its timer cancelled.
        """
        request = self._pending.pop(request_id, None)
        if request is None:
            return False
        request.cancel_timer()
        request.resolve(message)
        return True

    def remove(self, request_id: int) -> Optional[PendingRequest]:
        """Drop an entry if present. Safe to call more than once."""
        request = self._pending.pop(request_id, None)
        if request is not None:
            request.cancel_timer()
        return request

    def fail_all(self, error: BaseException) -> int:
        """Fail every pending request with *error* and clear the table."""
        requests = list(self._pending.values())
        self._pending.clear()
        for request in requests:
            request.cancel_timer()
            request.fail(error)
        return len(requests)

    def __contains__(self, request_id) -> bool:
        return request_id in self._pending

    def __len__(self) -> int:
        return len(self._pending)

    def __iter__(self) -> Iterator[int]:
        return iter(list(self._pending))

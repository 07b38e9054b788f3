"""Request identifier allocation."""

import random
from typing import Container, Optional

from ..core.errors import ResourceExhaustedError


# Largest identifier for each supported width. 32-bit ids stay within
# the non-negative range of the request-id Integer32.
MAX_REQUEST_ID = {
    16: 0xFFFF,
    32: 0x7FFFFFFF,
}


class RequestIdAllocator:
    """
    Draws random request identifiers that are not currently pending.

    Only live identifiers are checked; retired ones may be reused.
    """

    def __init__(self, max_attempts: int = 16, rng: Optional[random.Random] = None):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.max_attempts = max_attempts
        self._rng = rng or random.Random()

    def allocate(self, pending: Container[int], bits: int = 32) -> int:
        """Return an identifier of *bits* width that is not in *pending*."""
        try:
            upper = MAX_REQUEST_ID[bits]
        except KeyError:
            raise ValueError(f"Unsupported request id width: {bits}") from None

        for _ in range(self.max_attempts):
            request_id = self._rng.randint(0, upper)
            if request_id not in pending:
                return request_id

        raise ResourceExhaustedError(
            f"No free {bits}-bit request id after {self.max_attempts} attempts"
        )

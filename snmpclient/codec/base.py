"""Codec interface between structured messages and datagram payloads."""

from ..core.models import Message, SnmpVersion


class Codec:
    """
    Converts messages to bytes and back.

    Implementations must be deterministic for valid messages and
    raise DecodeError (never anything else) for malformed input.
    """

    versions = frozenset()

    def supports(self, version: SnmpVersion) -> bool:
        """Check whether this codec can carry messages of *version*."""
        return version in self.versions

    def encode(self, message: Message) -> bytes:
        raise NotImplementedError

    def decode(self, data: bytes) -> Message:
        raise NotImplementedError

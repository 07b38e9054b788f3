"""UDP endpoint for an SNMP client session."""

import asyncio
import logging
import random
from typing import Optional, Tuple, TYPE_CHECKING

if TYPE_CHECKING:
    from .session import Session


logger = logging.getLogger(__name__)

# IANA dynamic/private port range
EPHEMERAL_PORT_MIN = 49152
EPHEMERAL_PORT_MAX = 65535


def pick_source_port(rng: Optional[random.Random] = None) -> int:
    """Pick a local port from the dynamic range."""
    return (rng or random).randint(EPHEMERAL_PORT_MIN, EPHEMERAL_PORT_MAX)


class SessionProtocol(asyncio.DatagramProtocol):
    """UDP protocol handler feeding datagrams and socket errors to a session."""

    def __init__(self, session: "Session"):
        self.session = session
        self.transport: Optional[asyncio.DatagramTransport] = None

    def connection_made(self, transport):
        self.transport = transport
        self.session.attach(transport)

    def datagram_received(self, data: bytes, addr: Tuple[str, int]):
        self.session.dispatch(data, addr)

    def error_received(self, exc: Exception):
        # ICMP errors (port unreachable and friends) land here. The
        # request they belong to cannot be identified, so its timer
        # decides its fate.
        logger.debug(f"SNMP UDP error: {exc}")

    def connection_lost(self, exc: Optional[Exception]):
        self.transport = None
        if exc is not None:
            self.session.transport_lost(exc)


async def open_endpoint(
    session: "Session",
    address: str = "0.0.0.0",
    port: Optional[int] = None,
) -> Tuple[asyncio.DatagramTransport, SessionProtocol]:
    """Bind a datagram endpoint for *session* on (address, port)."""
    if port is None:
        port = pick_source_port()

    loop = asyncio.get_running_loop()
    transport, protocol = await loop.create_datagram_endpoint(
        lambda: SessionProtocol(session),
        local_addr=(address, port),
    )
    return transport, protocol

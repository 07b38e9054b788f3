"""
SNMP client session.

Sends GET, GETNEXT and SET requests to a remote agent over UDP,
correlates replies by request id and retries on timeout.
"""

import asyncio
import logging
import weakref
from typing import Optional, Tuple

from .allocator import RequestIdAllocator
from .pending import PendingRequest, PendingRequestTable
from .scheduler import RetryScheduler
from .transport import open_endpoint
from .walk import Walk
from ..codec import BerCodec, Codec
from ..core.config import Config
from ..core.errors import (
    BindError,
    ConfigurationError,
    DecodeError,
    SessionClosedError,
    SnmpError,
    TransportError,
)
from ..core.models import (
    Credential,
    Message,
    OidLike,
    Pdu,
    PduType,
    SnmpVersion,
    Varbind,
)


logger = logging.getLogger(__name__)


class Session:
    """
    An SNMP session with one default target agent.

    All state lives on the event loop that opened the session: the
    datagram endpoint, the pending request table and the retry
    timers. Coroutines issuing requests only wait on their own
    request's future. Calls from other threads must be submitted
    with asyncio.run_coroutine_threadsafe.

    Use create_session() or create_session_with_credential() to get
    a bound session.
    """

    def __init__(
        self,
        target: str,
        port: int = 161,
        trap_port: int = 162,
        retries: int = 1,
        timeout: float = 5.0,
        version: SnmpVersion = SnmpVersion.V2C,
        community: str = "",
        credential: Optional[Credential] = None,
        codec: Optional[Codec] = None,
        log: Optional[logging.Logger] = None,
        allocator: Optional[RequestIdAllocator] = None,
    ):
        if bool(community) == (credential is not None):
            raise ConfigurationError("Exactly one of community or credential must be given")
        if credential is not None and version != SnmpVersion.V3:
            raise ConfigurationError(f"Credentials require SNMP V3, not {version.name}")
        if community and version == SnmpVersion.V3:
            raise ConfigurationError("SNMP V3 sessions require a credential")
        if retries < 0:
            raise ConfigurationError(f"retries must not be negative: {retries}")
        if timeout <= 0:
            raise ConfigurationError(f"timeout must be positive: {timeout}")

        codec = codec or BerCodec()
        if not codec.supports(version):
            raise ConfigurationError(
                f"{type(codec).__name__} does not support SNMP {version.name}"
            )

        self.target = target
        self.port = port
        self.trap_port = trap_port
        self.retries = retries
        self.timeout = timeout
        self.version = version
        self.community = community
        self.credential = credential

        self._codec = codec
        self._log = log or logger
        self._allocator = allocator or RequestIdAllocator()
        self._requests = PendingRequestTable()
        self._scheduler = RetryScheduler(self._requests, self._transmit, log=self._log)
        self._transport: Optional[asyncio.DatagramTransport] = None
        self._walks: "weakref.WeakSet[Walk]" = weakref.WeakSet()
        self._closed = False
        self.local_address: Optional[Tuple[str, int]] = None

        self._log.info(f"SNMP {version.name} session for {target}:{port} initialized")

    # ── Lifecycle ───────────────────────────────────────────────

    async def open(self, address: Optional[str] = None, port: Optional[int] = None):
        """
        Bind the local datagram socket.

        Args:
            address: Local address to listen on (default 0.0.0.0)
            port: Local port (default: random port in 49152-65535)
        """
        if self._closed:
            raise SessionClosedError("Session is closed")
        if self._transport is not None:
            raise BindError("Session is already bound")

        address = address or "0.0.0.0"
        try:
            await open_endpoint(self, address, port)
        except OSError as e:
            raise BindError(f"Cannot bind {address}:{port}: {e}") from e

        self._log.info(f"Bound to {self.local_address[0]} on port {self.local_address[1]}")

    def attach(self, transport: asyncio.DatagramTransport):
        """Take ownership of a connected datagram transport."""
        self._transport = transport
        sockname = transport.get_extra_info("sockname")
        if sockname:
            self.local_address = (sockname[0], sockname[1])

    def close(self):
        """Close the socket and fail every pending request. Idempotent."""
        if self._closed:
            return
        self._shutdown(SessionClosedError("Session closed"))
        self._log.info(f"Socket on {self.target}:{self.port} closed")

    def transport_lost(self, exc: Exception):
        """The socket went away underneath the session."""
        if self._closed:
            return
        self._log.error(f"Socket for {self.target}:{self.port} lost: {exc}")
        self._shutdown(TransportError(f"Socket closed: {exc}"))

    def _shutdown(self, error: SnmpError):
        self._closed = True
        transport, self._transport = self._transport, None
        if transport is not None:
            transport.close()
        failed = self._requests.fail_all(error)
        if failed:
            self._log.info(f"Failed {failed} pending requests: {error}")
        for walk in list(self._walks):
            walk.session_closed()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending_count(self) -> int:
        """Number of in-flight requests."""
        return len(self._requests)

    async def __aenter__(self) -> "Session":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        self.close()

    # ── Requests ────────────────────────────────────────────────

    async def get(self, oid: OidLike, target: Optional[str] = None, port: Optional[int] = None) -> Message:
        """Send a GET request for a single OID."""
        return await self._request(PduType.GET_REQUEST, (Varbind(oid),), target, port)

    async def get_next(self, oid: OidLike, target: Optional[str] = None, port: Optional[int] = None) -> Message:
        """Request the lexicographically next OID after *oid*."""
        return await self._request(PduType.GET_NEXT_REQUEST, (Varbind(oid),), target, port)

    async def set(self, varbind: Varbind, target: Optional[str] = None, port: Optional[int] = None) -> Message:
        """Send a SET request with *varbind* as payload."""
        return await self._request(PduType.SET_REQUEST, (varbind,), target, port)

    def walk(self, oid: Optional[OidLike] = None, target: Optional[str] = None, port: Optional[int] = None) -> Walk:
        """
        Walk the MIB with successive GETNEXT requests.

        Returns an async iterator of reply messages. If *oid* is not
        given the walk starts at 1.3.6.1.
        """
        self._ensure_open()
        walk = Walk(self, oid, target=target, port=port, log=self._log)
        self._walks.add(walk)
        return walk

    def _ensure_open(self):
        if self._closed:
            raise SessionClosedError("Session is closed")
        if self._transport is None:
            raise SessionClosedError("Session is not bound")

    async def _request(self, pdu_type: PduType, varbinds, target: Optional[str], port: Optional[int]) -> Message:
        self._ensure_open()

        destination = (
            target if target is not None else self.target,
            port if port is not None else self.port,
        )
        request_id = self._allocator.allocate(self._requests, bits=32)
        message = Message(
            version=self.version,
            community=self.community,
            credential=self.credential,
            pdu=Pdu(pdu_type, request_id, varbinds),
        )
        payload = self._codec.encode(message)

        request = PendingRequest(
            request_id=request_id,
            destination=destination,
            payload=payload,
            retries=self.retries,
            timeout=self.timeout,
            future=asyncio.get_running_loop().create_future(),
        )
        self._requests.register(request)
        try:
            self._scheduler.start(request)
            return await request.future
        finally:
            # The id may already belong to a newer request
            if self._requests.get(request_id) is request:
                self._requests.remove(request_id)

    def _transmit(self, payload: bytes, destination: Tuple[str, int]):
        if self._transport is None:
            return
        try:
            self._transport.sendto(payload, destination)
        except OSError as e:
            self.transport_lost(e)

    # ── Inbound dispatch ────────────────────────────────────────

    def dispatch(self, data: bytes, addr):
        """Route one received datagram to the request waiting for it."""
        try:
            message = self._codec.decode(data)
        except DecodeError as e:
            self._log.warning(f"Dropping malformed datagram from {addr[0]}:{addr[1]}: {e}")
            return

        if self._requests.complete(message.request_id, message):
            self._log.debug(f"Received reply {message.request_id} from {addr[0]}:{addr[1]}")
        else:
            self._log.debug(
                f"Discarding unexpected reply {message.request_id} from {addr[0]}:{addr[1]}"
            )


async def create_session(
    target: str,
    community: str = "public",
    port: int = 161,
    trap_port: int = 162,
    retries: int = 1,
    timeout: float = 5.0,
    version: SnmpVersion = SnmpVersion.V2C,
    source_address: Optional[str] = None,
    source_port: Optional[int] = None,
    codec: Optional[Codec] = None,
    log: Optional[logging.Logger] = None,
) -> Session:
    """Open an SNMP v1 or v2c session with *target*."""
    if version == SnmpVersion.V3:
        raise ConfigurationError("Use create_session_with_credential for SNMP V3")
    if not community:
        raise ConfigurationError("A community string is required for SNMP v1/v2c")

    session = Session(
        target,
        port=port,
        trap_port=trap_port,
        retries=retries,
        timeout=timeout,
        version=version,
        community=community,
        codec=codec,
        log=log,
    )
    await session.open(source_address, source_port)
    return session


async def create_session_with_credential(
    target: str,
    credential: Credential,
    port: int = 161,
    trap_port: int = 162,
    retries: int = 1,
    timeout: float = 5.0,
    source_address: Optional[str] = None,
    source_port: Optional[int] = None,
    codec: Optional[Codec] = None,
    log: Optional[logging.Logger] = None,
) -> Session:
    """Open an SNMP v3 session with *target* using *credential*."""
    if credential is None:
        raise ConfigurationError("A credential is required for SNMP V3")

    session = Session(
        target,
        port=port,
        trap_port=trap_port,
        retries=retries,
        timeout=timeout,
        version=SnmpVersion.V3,
        credential=credential,
        codec=codec,
        log=log,
    )
    await session.open(source_address, source_port)
    return session


async def create_session_from_config(config: Config, codec: Optional[Codec] = None) -> Session:
    """Open a session described by a loaded Config."""
    settings = config.session
    common = dict(
        port=settings.port,
        trap_port=settings.trap_port,
        retries=settings.retries,
        timeout=settings.timeout_seconds,
        source_address=settings.source_address,
        source_port=settings.source_port,
        codec=codec,
        log=config.logging.get_logger(),
    )

    if config.version == SnmpVersion.V3:
        if not config.credential.enabled:
            raise ConfigurationError("SNMP V3 configured without a credential username")
        return await create_session_with_credential(
            settings.target,
            config.credential.to_credential(),
            **common,
        )

    return await create_session(
        settings.target,
        community=settings.community,
        version=config.version,
        **common,
    )

"""
Test doubles for driving a session without a network.

FakeTransport stands in for the asyncio datagram transport and can
answer requests through a scripted agent.
"""

import asyncio
import pickle
from typing import Callable, Dict, List, Optional, Tuple

from snmpclient.client.session import Session
from snmpclient.client.transport import SessionProtocol
from snmpclient.codec import Codec
from snmpclient.core.errors import DecodeError
from snmpclient.core.models import (
    Message,
    Oid,
    Pdu,
    PduError,
    PduType,
    SnmpVersion,
    Varbind,
    VarbindType,
)


TARGET = ("192.0.2.10", 161)


class PickleCodec(Codec):
    """Codec for tests: any version, pickled messages."""

    versions = frozenset(SnmpVersion)

    def encode(self, message: Message) -> bytes:
        return pickle.dumps(message)

    def decode(self, data: bytes) -> Message:
        try:
            message = pickle.loads(data)
        except Exception as e:
            raise DecodeError(f"not a pickled message: {e}") from e
        if not isinstance(message, Message):
            raise DecodeError(f"not a message: {type(message).__name__}")
        return message


def reply_to(request: Message, varbinds, error_status=PduError.NO_ERROR, request_id=None) -> Message:
    """Build the response an agent would send for *request*."""
    return Message(
        version=request.version,
        community=request.community,
        pdu=Pdu(
            type=PduType.RESPONSE,
            request_id=request.request_id if request_id is None else request_id,
            varbinds=tuple(varbinds),
            error_status=error_status,
        ),
    )


class MibAgent:
    """
    Minimal agent over a fixed set of OIDs.

    Answers GET, GETNEXT (endOfMibView past the last OID) and SET.
    If *no_such_name_on* is given, that call (1-based) answers with
    noSuchName instead.
    """

    def __init__(self, values: Dict[str, int], no_such_name_on: Optional[int] = None):
        self.values = {Oid.parse(oid): value for oid, value in values.items()}
        self.no_such_name_on = no_such_name_on
        self.calls = 0

    def __call__(self, request: Message) -> Optional[Message]:
        self.calls += 1
        varbind = request.pdu.varbinds[0]

        if self.no_such_name_on == self.calls:
            return reply_to(request, [varbind], error_status=PduError.NO_SUCH_NAME)

        if request.pdu.type == PduType.GET_NEXT_REQUEST:
            following = sorted(oid for oid in self.values if oid > varbind.oid)
            if not following:
                return reply_to(request, [Varbind(varbind.oid, VarbindType.END_OF_MIB_VIEW)])
            oid = following[0]
            return reply_to(request, [Varbind(oid, VarbindType.INTEGER, self.values[oid])])

        if request.pdu.type == PduType.SET_REQUEST:
            self.values[varbind.oid] = varbind.value
            return reply_to(request, [varbind])

        if varbind.oid not in self.values:
            return reply_to(request, [Varbind(varbind.oid, VarbindType.NO_SUCH_INSTANCE)])
        return reply_to(request, [Varbind(varbind.oid, VarbindType.INTEGER, self.values[varbind.oid])])


class FakeTransport(asyncio.DatagramTransport):
    """
    In-memory datagram transport.

    Every sendto() is recorded. If an agent is set, its reply is
    delivered on the next loop iteration.
    """

    def __init__(self, codec: Codec, agent: Optional[Callable[[Message], Optional[Message]]] = None):
        super().__init__()
        self.codec = codec
        self.agent = agent
        self.protocol: Optional[SessionProtocol] = None
        self.sent: List[Tuple[bytes, Tuple[str, int]]] = []
        self.closed = False

    @property
    def requests(self) -> List[Message]:
        return [self.codec.decode(payload) for payload, _ in self.sent]

    def get_extra_info(self, name, default=None):
        if name == "sockname":
            return ("0.0.0.0", 50161)
        return default

    def sendto(self, data, addr=None):
        assert not self.closed, "sendto() on a closed transport"
        self.sent.append((data, addr))
        if self.agent is not None:
            reply = self.agent(self.codec.decode(data))
            if reply is not None:
                asyncio.get_running_loop().call_soon(self.deliver, reply, addr)

    def deliver(self, message: Message, addr=TARGET):
        self.protocol.datagram_received(self.codec.encode(message), addr)

    def deliver_raw(self, data: bytes, addr=TARGET):
        self.protocol.datagram_received(data, addr)

    def answer(self, agent, index: int = -1):
        """Let *agent* answer the request sent at *index*."""
        self.deliver(agent(self.requests[index]))

    async def wait_for_sends(self, count: int, timeout: float = 1.0):
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        while len(self.sent) < count:
            if loop.time() > deadline:
                raise AssertionError(f"expected {count} sends, saw {len(self.sent)}")
            await asyncio.sleep(0.001)

    def close(self):
        self.closed = True

    def is_closing(self):
        return self.closed


def connect(agent=None, codec: Optional[Codec] = None, **kwargs) -> Tuple[Session, FakeTransport]:
    """Create a session wired to a FakeTransport."""
    codec = codec or PickleCodec()
    kwargs.setdefault("community", "public")
    session = Session(TARGET[0], port=TARGET[1], codec=codec, **kwargs)

    transport = FakeTransport(codec, agent)
    protocol = SessionProtocol(session)
    transport.protocol = protocol
    protocol.connection_made(transport)
    return session, transport

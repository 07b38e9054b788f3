"""
Data models for SNMP messages.

These dataclasses represent the structured messages exchanged
with a remote agent. They are immutable once created.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Iterable, Optional, Tuple, Union


def oid_to_tuple(oid: str) -> Tuple[int, ...]:
    """Convert a dotted OID string to a tuple of ints."""
    return tuple(int(part) for part in oid.strip().strip(".").split("."))


def tuple_to_oid(parts: Iterable[int]) -> str:
    """Convert a tuple of ints to a dotted OID string."""
    return ".".join(str(part) for part in parts)


class SnmpVersion(IntEnum):
    """Protocol version as carried in the message header."""

    V1 = 0
    V2C = 1
    V3 = 3


class PduType(IntEnum):
    """PDU types, valued by their BER context tag."""

    GET_REQUEST = 0xA0
    GET_NEXT_REQUEST = 0xA1
    RESPONSE = 0xA2
    SET_REQUEST = 0xA3


class PduError(IntEnum):
    """Error status returned by an agent."""

    NO_ERROR = 0
    TOO_BIG = 1
    NO_SUCH_NAME = 2
    BAD_VALUE = 3
    READ_ONLY = 4
    GEN_ERR = 5
    NO_ACCESS = 6
    WRONG_TYPE = 7
    WRONG_LENGTH = 8
    WRONG_ENCODING = 9
    WRONG_VALUE = 10
    NO_CREATION = 11
    INCONSISTENT_VALUE = 12
    RESOURCE_UNAVAILABLE = 13
    COMMIT_FAILED = 14
    UNDO_FAILED = 15
    AUTHORIZATION_ERROR = 16
    NOT_WRITABLE = 17
    INCONSISTENT_NAME = 18


class VarbindType(IntEnum):
    """Value type tags, valued by their BER tag byte."""

    INTEGER = 0x02
    OCTET_STRING = 0x04
    NULL = 0x05
    OID = 0x06
    IP_ADDRESS = 0x40
    COUNTER32 = 0x41
    GAUGE32 = 0x42
    TIMETICKS = 0x43
    OPAQUE = 0x44
    COUNTER64 = 0x46
    NO_SUCH_OBJECT = 0x80
    NO_SUCH_INSTANCE = 0x81
    END_OF_MIB_VIEW = 0x82

    @property
    def is_exception(self) -> bool:
        """True for the v2c exception values that carry no data."""
        return self in (
            VarbindType.NO_SUCH_OBJECT,
            VarbindType.NO_SUCH_INSTANCE,
            VarbindType.END_OF_MIB_VIEW,
        )


@dataclass(frozen=True, order=True)
class Oid:
    """
    Object identifier.

    Ordering is lexicographic over the integer arcs, which is
    the order agents use for GETNEXT traversal.
    """

    parts: Tuple[int, ...]

    def __post_init__(self):
        parts = tuple(int(p) for p in self.parts)
        if not parts:
            raise ValueError("OID must have at least one arc")
        if any(p < 0 for p in parts):
            raise ValueError(f"OID arcs must be non-negative: {parts}")
        object.__setattr__(self, "parts", parts)

    @classmethod
    def parse(cls, value: "OidLike") -> "Oid":
        """Build an Oid from an Oid, a dotted string or a sequence of ints."""
        if isinstance(value, Oid):
            return value
        if isinstance(value, str):
            try:
                return cls(oid_to_tuple(value))
            except ValueError:
                raise ValueError(f"Invalid OID string: {value!r}") from None
        return cls(tuple(value))

    def startswith(self, other: "Oid") -> bool:
        """True if *other* is a prefix of this OID."""
        return self.parts[:len(other.parts)] == other.parts

    def __len__(self) -> int:
        return len(self.parts)

    def __str__(self) -> str:
        return tuple_to_oid(self.parts)


OidLike = Union[Oid, str, Tuple[int, ...]]

# Walks start here unless told otherwise
ROOT_OID = Oid((1, 3, 6, 1))


@dataclass(frozen=True)
class Varbind:
    """A single (OID, type, value) binding."""

    oid: Oid
    type: VarbindType = VarbindType.NULL
    value: Any = None

    def __post_init__(self):
        object.__setattr__(self, "oid", Oid.parse(self.oid))
        object.__setattr__(self, "type", VarbindType(self.type))

    def __str__(self) -> str:
        return f"{self.oid} = {self.type.name}: {self.value!r}"


@dataclass(frozen=True)
class Pdu:
    """Protocol data unit carried by a message."""

    type: PduType
    request_id: int
    varbinds: Tuple[Varbind, ...] = ()
    error_status: Union[PduError, int] = PduError.NO_ERROR
    error_index: int = 0

    def __post_init__(self):
        object.__setattr__(self, "varbinds", tuple(self.varbinds))
        try:
            status = PduError(self.error_status)
        except ValueError:
            # Statuses outside the known set are kept as the raw number
            status = int(self.error_status)
        object.__setattr__(self, "error_status", status)

    @property
    def has_error(self) -> bool:
        return self.error_status != PduError.NO_ERROR


@dataclass(frozen=True)
class Credential:
    """
    SNMPv3 user credential.

    Opaque to the session engine; only a codec that implements the
    user security model interprets it.
    """

    username: str
    auth_protocol: str = "SHA"  # MD5 or SHA
    auth_key: str = field(default="", repr=False)
    priv_protocol: str = "AES"  # DES or AES
    priv_key: str = field(default="", repr=False)


@dataclass(frozen=True)
class Message:
    """A complete SNMP message: header plus one PDU."""

    version: SnmpVersion
    pdu: Pdu
    community: str = ""
    credential: Optional[Credential] = None

    @property
    def request_id(self) -> int:
        return self.pdu.request_id

"""Core module containing message models, errors and configuration."""

from .models import (
    Oid,
    Varbind,
    VarbindType,
    Pdu,
    PduType,
    PduError,
    Message,
    SnmpVersion,
    Credential,
    ROOT_OID,
)
from .config import Config
from .errors import (
    SnmpError,
    ConfigurationError,
    BindError,
    TransportError,
    SessionClosedError,
    RequestTimeoutError,
    ResourceExhaustedError,
    EncodeError,
    DecodeError,
    ProtocolError,
    OidNotIncreasingError,
)

__all__ = [
    "Oid",
    "Varbind",
    "VarbindType",
    "Pdu",
    "PduType",
    "PduError",
    "Message",
    "SnmpVersion",
    "Credential",
    "ROOT_OID",
    "Config",
    "SnmpError",
    "ConfigurationError",
    "BindError",
    "TransportError",
    "SessionClosedError",
    "RequestTimeoutError",
    "ResourceExhaustedError",
    "EncodeError",
    "DecodeError",
    "ProtocolError",
    "OidNotIncreasingError",
]

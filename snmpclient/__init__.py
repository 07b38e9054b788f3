"""
Asynchronous SNMP client.

Sends GET, GETNEXT and SET requests to SNMP agents over UDP and
walks MIB subtrees with successive GETNEXT requests.
"""

from .client import (
    Session,
    Walk,
    create_session,
    create_session_with_credential,
    create_session_from_config,
)
from .codec import BerCodec, Codec
from .core import (
    Config,
    Credential,
    Message,
    Oid,
    Pdu,
    PduError,
    PduType,
    ROOT_OID,
    SnmpVersion,
    Varbind,
    VarbindType,
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

__version__ = "1.0.0"

__all__ = [
    "Session",
    "Walk",
    "create_session",
    "create_session_with_credential",
    "create_session_from_config",
    "BerCodec",
    "Codec",
    "Config",
    "Credential",
    "Message",
    "Oid",
    "Pdu",
    "PduError",
    "PduType",
    "ROOT_OID",
    "SnmpVersion",
    "Varbind",
    "VarbindType",
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

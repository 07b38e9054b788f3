"""Exception hierarchy for the SNMP client."""


class SnmpError(Exception):
    """Base class for all SNMP client errors."""


class ConfigurationError(SnmpError):
    """Invalid session parameters (community/credential/version mix)."""


class BindError(SnmpError):
    """The local datagram socket could not be bound."""


class TransportError(SnmpError):
    """The socket failed underneath an open session."""


class SessionClosedError(SnmpError):
    """The session was closed before or while the request was pending."""


class RequestTimeoutError(SnmpError, TimeoutError):
    """No matching reply arrived after all retries."""

    def __init__(self, message: str, transmissions: int = 0):
        super().__init__(message)
        self.transmissions = transmissions


class ResourceExhaustedError(SnmpError):
    """No free request identifier could be found."""


class CodecError(SnmpError):
    """Base class for wire encoding failures."""


class EncodeError(CodecError):
    """A message could not be encoded."""


class DecodeError(CodecError):
    """A datagram could not be decoded into a message."""


class ProtocolError(SnmpError):
    """The agent answered in a way the client cannot make progress with."""


class OidNotIncreasingError(ProtocolError):
    """A walk step returned an OID that does not sort after the request."""

    def __init__(self, requested, returned):
        super().__init__(f"OID not increasing: {returned} after {requested}")
        self.requested = requested
        self.returned = returned

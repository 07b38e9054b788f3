"""
BER codec for SNMPv1 and SNMPv2c messages.

Messages are built and taken apart with pysnmp's protocol API
(``pysnmp.proto.api``) and serialized with pyasn1's BER encoder
and decoder.
"""

from typing import Any, Dict

from pyasn1.codec.ber import decoder, encoder
from pyasn1.error import PyAsn1Error
from pysnmp.proto import api
from pysnmp.proto.api import v1, v2c

from .base import Codec
from ..core.errors import DecodeError, EncodeError
from ..core.models import (
    Message,
    Oid,
    Pdu,
    PduType,
    SnmpVersion,
    Varbind,
    VarbindType,
)


# PDU classes by name, looked up on the protocol module of each version
_PDU_CLASS_NAMES = {
    PduType.GET_REQUEST: "GetRequestPDU",
    PduType.GET_NEXT_REQUEST: "GetNextRequestPDU",
    PduType.RESPONSE: "GetResponsePDU",
    PduType.SET_REQUEST: "SetRequestPDU",
}

# Value classes each version can carry
_VALUE_CLASSES: Dict[SnmpVersion, Dict[VarbindType, Any]] = {
    SnmpVersion.V1: {
        VarbindType.INTEGER: v1.Integer,
        VarbindType.OCTET_STRING: v1.OctetString,
        VarbindType.NULL: v1.Null,
        VarbindType.OID: v1.ObjectIdentifier,
        VarbindType.IP_ADDRESS: v1.IpAddress,
        VarbindType.COUNTER32: v1.Counter,
        VarbindType.GAUGE32: v1.Gauge,
        VarbindType.TIMETICKS: v1.TimeTicks,
        VarbindType.OPAQUE: v1.Opaque,
    },
    SnmpVersion.V2C: {
        VarbindType.INTEGER: v2c.Integer32,
        VarbindType.OCTET_STRING: v2c.OctetString,
        VarbindType.NULL: v2c.Null,
        VarbindType.OID: v2c.ObjectIdentifier,
        VarbindType.IP_ADDRESS: v2c.IpAddress,
        VarbindType.COUNTER32: v2c.Counter32,
        VarbindType.GAUGE32: v2c.Gauge32,
        VarbindType.TIMETICKS: v2c.TimeTicks,
        VarbindType.OPAQUE: v2c.Opaque,
        VarbindType.COUNTER64: v2c.Counter64,
        VarbindType.NO_SUCH_OBJECT: v2c.NoSuchObject,
        VarbindType.NO_SUCH_INSTANCE: v2c.NoSuchInstance,
        VarbindType.END_OF_MIB_VIEW: v2c.EndOfMibView,
    },
}

# v1 application types share their tags with the v2c ones
_TYPES_BY_TAG = {
    value_class.tagSet: value_type
    for value_type, value_class in _VALUE_CLASSES[SnmpVersion.V2C].items()
}

_NULL_TYPES = (
    VarbindType.NULL,
    VarbindType.NO_SUCH_OBJECT,
    VarbindType.NO_SUCH_INSTANCE,
    VarbindType.END_OF_MIB_VIEW,
)

_INTEGER_TYPES = (
    VarbindType.INTEGER,
    VarbindType.COUNTER32,
    VarbindType.GAUGE32,
    VarbindType.TIMETICKS,
    VarbindType.COUNTER64,
)


def _to_octets(value: Any) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


class BerCodec(Codec):
    """
    Community-based (v1/v2c) message codec.

    SNMPv3 needs the user security model around the scoped PDU,
    which this codec does not implement.
    """

    versions = frozenset((SnmpVersion.V1, SnmpVersion.V2C))

    def encode(self, message: Message) -> bytes:
        """Encode *message* to BER bytes."""
        if not self.supports(message.version):
            raise EncodeError(f"BER codec cannot encode SNMP {message.version.name} messages")

        pMod = api.PROTOCOL_MODULES[int(message.version)]
        values = _VALUE_CLASSES[message.version]

        try:
            pdu = getattr(pMod, _PDU_CLASS_NAMES[message.pdu.type])()
            pMod.apiPDU.set_defaults(pdu)
            pMod.apiPDU.set_request_id(pdu, message.pdu.request_id)
            pMod.apiPDU.set_error_status(pdu, int(message.pdu.error_status))
            pMod.apiPDU.set_error_index(pdu, message.pdu.error_index)
            pMod.apiPDU.set_varbinds(pdu, [
                (varbind.oid.parts, self._encode_value(values, varbind))
                for varbind in message.pdu.varbinds
            ])

            msg = pMod.Message()
            pMod.apiMessage.set_defaults(msg)
            pMod.apiMessage.set_community(msg, message.community.encode("utf-8"))
            pMod.apiMessage.set_pdu(msg, pdu)

            return encoder.encode(msg)
        except (PyAsn1Error, ValueError, TypeError) as e:
            raise EncodeError(f"Cannot encode request {message.pdu.request_id}: {e}") from e

    def _encode_value(self, values: Dict[VarbindType, Any], varbind: Varbind):
        value_class = values.get(varbind.type)
        if value_class is None:
            raise ValueError(f"{varbind.type.name} is not allowed in this SNMP version")

        value = varbind.value
        if varbind.type in _NULL_TYPES:
            return value_class("")
        if varbind.type in _INTEGER_TYPES:
            return value_class(int(value))
        if varbind.type == VarbindType.OID:
            return value_class(Oid.parse(value).parts)
        if varbind.type == VarbindType.IP_ADDRESS:
            # Dotted string or four raw octets
            return value_class(value if isinstance(value, str) else bytes(value))
        return value_class(_to_octets(value))

    def decode(self, data: bytes) -> Message:
        """Decode a datagram into a Message, raising DecodeError on bad input."""
        data = bytes(data)
        try:
            msg_ver = int(api.decodeMessageVersion(data))
            if msg_ver not in api.PROTOCOL_MODULES:
                raise DecodeError(f"Unsupported SNMP version {msg_ver}")
            pMod = api.PROTOCOL_MODULES[msg_ver]

            msg, rest = decoder.decode(data, asn1Spec=pMod.Message())
        except PyAsn1Error as e:
            raise DecodeError(f"Malformed SNMP message: {e}") from e

        if rest:
            raise DecodeError(f"{len(rest)} trailing bytes after SNMP message")

        try:
            pdu = pMod.apiMessage.get_pdu(msg)
            pdu_type = self._pdu_type(pMod, pdu)

            varbinds = tuple(
                Varbind(Oid(tuple(oid.asTuple())), *self._decode_value(value))
                for oid, value in pMod.apiPDU.get_varbinds(pdu)
            )

            return Message(
                version=SnmpVersion(msg_ver),
                community=pMod.apiMessage.get_community(msg).asOctets().decode("utf-8", errors="replace"),
                pdu=Pdu(
                    type=pdu_type,
                    request_id=int(pMod.apiPDU.get_request_id(pdu)),
                    varbinds=varbinds,
                    error_status=int(pMod.apiPDU.get_error_status(pdu)),
                    error_index=int(pMod.apiPDU.get_error_index(pdu, muteErrors=True)),
                ),
            )
        except (PyAsn1Error, KeyError, ValueError, TypeError) as e:
            raise DecodeError(f"Invalid SNMP message contents: {e}") from e

    @staticmethod
    def _pdu_type(pMod, pdu) -> PduType:
        for pdu_type, name in _PDU_CLASS_NAMES.items():
            if pdu.isSameTypeWith(getattr(pMod, name)()):
                return pdu_type
        raise DecodeError(f"Unexpected PDU {pdu.__class__.__name__}")

    @staticmethod
    def _decode_value(value):
        value_type = _TYPES_BY_TAG.get(value.tagSet)
        if value_type is None:
            raise DecodeError(f"Unknown value type {value.__class__.__name__}")

        if value_type in _NULL_TYPES:
            return value_type, None
        if value_type in _INTEGER_TYPES:
            return value_type, int(value)
        if value_type == VarbindType.OID:
            return value_type, Oid(tuple(value.asTuple()))
        if value_type == VarbindType.IP_ADDRESS:
            return value_type, value.prettyPrint()
        return value_type, value.asOctets()

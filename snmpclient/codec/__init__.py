"""Wire codecs for SNMP messages."""

from .base import Codec
from .ber import BerCodec

__all__ = ["Codec", "BerCodec"]

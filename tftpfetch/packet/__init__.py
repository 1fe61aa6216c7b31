"""Packet classes, the parsing factory and the functional codec."""

from . import types
from .codec import encode_rrq, encode_ack, decode_header, decode_data, decode_error
from .factory import PacketFactory

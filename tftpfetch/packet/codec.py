"""Stateless encode and decode helpers for the packets a downloading client
sends and receives. Each call works on its own buffer."""

import struct

from typing import Tuple, Union

from tftpfetch.shared import Opcode, Mode
from tftpfetch.exceptions import MalformedPacketError
from tftpfetch.packet import types

def encode_rrq(filename: str, mode: str = Mode.OCTET) -> bytes:
    """Build the wire form of a read request.

    Raises:
        EncodingError: the request can not be represented on the wire
    """
    return types.ReadRQ(filename, mode).encode().buffer

def encode_ack(block_number: int) -> bytes:
    """Build the 4-byte ACK for block_number."""
    return types.Ack(block_number).encode().buffer

def decode_header(buffer: bytes) -> Union[Opcode, int]:
    """Return the opcode of a datagram. Opcodes outside the known set are
    returned as plain integers.

    Raises:
        MalformedPacketError: fewer than 2 bytes
    """

    if len(buffer) < 2:
        raise MalformedPacketError(f"packet too short for an opcode: {len(buffer)} bytes")

    (opcode,) = struct.unpack("!H", buffer[:2])
    try:
        return Opcode(opcode)
    except ValueError:
        return opcode

def decode_data(buffer: bytes) -> Tuple[int, bytes]:
    """Return (block number, payload) of a DATA datagram."""
    packet = types.Data()
    packet.buffer = buffer
    packet.decode()
    return packet.blocknumber, packet.data

def decode_error(buffer: bytes) -> Tuple[int, str]:
    """Return (error code, message) of an ERROR datagram."""
    packet = types.Error()
    packet.buffer = buffer
    packet.decode()
    return packet.errorcode, packet.errmsg

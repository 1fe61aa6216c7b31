import logging

from typing import Union

from tftpfetch.shared import Opcode
from tftpfetch.packet import types
from tftpfetch.packet.codec import decode_header

logger = logging.getLogger('tftpfetch.packet.factory')

packet_type = Union[
    types.ReadRQ,
    types.Data,
    types.Ack,
    types.Error,
    types.Unknown
]

class PacketFactory:
    """This class generates TftpPacket objects. It is responsible for parsing
    raw buffers off of the wire and returning objects representing them, via
    the parse() method."""

    _classes = {
        Opcode.RRQ: types.ReadRQ,
        Opcode.DATA: types.Data,
        Opcode.ACK: types.Ack,
        Opcode.ERROR: types.Error,
        }

    def parse(self, buffer: bytes) -> packet_type:
        """This method is used to parse an existing datagram into its
        corresponding TftpPacket object.

        Args:
            buffer (bytes): Packet Data

        Raises:
            MalformedPacketError: buffer too short for the opcode's header

        Returns:
            types: packet type base on the opcode
        """

        logger.debug(f"parsing a {len(buffer)} byte packet")
        opcode = decode_header(buffer)
        logger.debug(f"opcode is {opcode}")
        packet = self.__create(opcode)
        packet.buffer = buffer
        return packet.decode()

    def __create(self, opcode: int) -> packet_type:
        """This method returns the appropriate class object corresponding to
        the passed opcode. Opcodes this client does not handle get an
        Unknown packet.

        Args:
            opcode (int): The opcode from the buffer

        Returns:
            types: The Appropriate packet type class
        """

        if opcode in self._classes:
            return self._classes[opcode]()

        logger.debug(f"No packet class for opcode {opcode}")
        return types.Unknown(int(opcode))

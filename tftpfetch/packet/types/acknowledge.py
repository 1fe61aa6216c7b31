import logging
import struct

from .base import TftpPacket
from tftpfetch.exceptions import EncodingError
from tftpfetch.shared import MAX_BLOCKNUMBER

logger = logging.getLogger('tftpfetch.packet.types.acknowledge')

class Ack(TftpPacket):
    """
    Acknowledgement Packet
           2 bytes  2 bytes
           -----------------
    ACK   | 04    | Block # |
           -----------------
    """

    min_length = 4

    def __init__(self, blocknumber: int = 0) -> None:
        super().__init__()
        self.opcode = 4
        self.blocknumber = blocknumber

    def __str__(self) -> str:
        return f"ACK packet: block {self.blocknumber}"

    def encode(self) -> 'Ack':
        """Encode acknowlegement packet for sending

        Raises:
            EncodingError: block number does not fit in 16 bits

        Returns:
            Ack: self
        """

        if not 0 <= self.blocknumber < MAX_BLOCKNUMBER:
            raise EncodingError(f"block number out of range: {self.blocknumber}")

        logger.debug(f"encoding ACK: opcode = {self.opcode}, block = {self.blocknumber}")
        self.buffer = struct.pack("!HH", self.opcode, self.blocknumber)
        return self

    def decode(self) -> 'Ack':
        """Decode an acknowlegement packet

        Returns:
            Ack: self
        """

        self.check_length()
        if len(self.buffer) > 4:
            logger.debug("detected TFTP ACK but request is too large, will truncate")
            logger.debug(f"buffer was: {repr(self.buffer)}")

        self.opcode, self.blocknumber = struct.unpack("!HH", self.buffer[:4])
        logger.debug(f"decoded ACK packet: opcode = {self.opcode}, block = {self.blocknumber}")
        return self

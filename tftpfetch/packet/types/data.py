import struct
import logging

from .base import TftpPacket

logger = logging.getLogger('tftpfetch.packet.types.data')

class Data(TftpPacket):
    """
           2 bytes  2 bytes  n bytes
           ---------------------~~--
    DATA  | 03    | Block # | Data  |
           ---------------------~~--
    """

    min_length = 4

    def __init__(self, blocknumber: int = 0, data: bytes = b"") -> None:
        super().__init__()
        self.opcode = 3
        self.blocknumber = blocknumber
        self.data = data

    def __str__(self) -> str:
        s = f"DAT packet: block {self.blocknumber}"
        if self.data:
            s += f"\n    data: {len(self.data)} bytes"

        return s

    def encode(self) -> 'Data':
        """Encode the Data packet.

        Returns:
            Data: self
        """

        if len(self.data) == 0:
            logger.debug("Encoding an empty DAT packet")

        fmt = b"!HH%ds" % len(self.data)
        self.buffer = struct.pack(fmt,
                                  self.opcode,
                                  self.blocknumber,
                                  bytes(self.data))

        return self

    def decode(self) -> 'Data':
        """Decode Data packet.

        Raises:
            MalformedPacketError: fewer than 4 bytes in the buffer

        Returns:
            Data: self
        """

        self.check_length()
        # We know the first 2 bytes are the opcode. The second two are the
        # block number.
        (self.blocknumber,) = struct.unpack("!H", self.buffer[2:4])
        logger.debug(f"decoding DAT packet, block number {self.blocknumber}")

        # Everything else is data. Copy it out so the payload outlives the
        # datagram it arrived in.
        self.data = bytes(self.buffer[4:])
        logger.debug(f"found {len(self.data)} bytes of data")

        return self

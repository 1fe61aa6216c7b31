import logging
import struct

from .base import TftpPacket
from tftpfetch.shared import TftpErrors

logger = logging.getLogger('tftpfetch.packet.types.error')

class Error(TftpPacket):
    """
        Error Packet

            2 bytes   2 bytes      string   1 byte
            --------------------------------------
     ERROR | 05     | ErrorCode |  ErrMsg  |   0  |
            --------------------------------------

    Error Codes

    Value     Meaning

    0         Not defined, see error message (if any).
    1         File not found.
    2         Access violation.
    3         Disk full or allocation exceeded.
    4         Illegal TFTP operation.
    5         Unknown transfer ID.
    6         File already exists.
    7         No such user.
    8         Failed to negotiate options
    """

    min_length = 4

    def __init__(self, errorcode: int = TftpErrors.NOTDEFINED, errmsg: str = None) -> None:
        super().__init__()
        self.opcode = 5
        self.errorcode = errorcode
        self.errmsg = errmsg

    def __str__(self) -> str:
        return f"ERR packet: errorcode = {self.errorcode}\n    msg = {self.errmsg or ''}"

    def encode(self) -> 'Error':
        """Encode the Error packet. When no message was set, the standard
        text for the error code is used.

        Returns:
            Error: self
        """

        if self.errmsg is None:
            self.errmsg = TftpErrors.messages.get(self.errorcode, "")

        message = self.errmsg.encode('ascii', errors='replace')
        fmt = b"!HH%dsx" % len(message)
        logger.debug(f"encoding ERR packet with fmt {fmt}")
        self.buffer = struct.pack(fmt,
                                  self.opcode,
                                  self.errorcode,
                                  message)

        return self

    def decode(self) -> 'Error':
        """Decode Error packet. Servers that skip the message, or its null
        terminator, are tolerated.

        Raises:
            MalformedPacketError: fewer than 4 bytes in the buffer

        Returns:
            Error: self
        """

        self.check_length()
        buflen = len(self.buffer)
        logger.debug(f"Decoding ERR packet, length {buflen} bytes")

        self.opcode, self.errorcode = struct.unpack("!HH", self.buffer[:4])
        message = bytes(self.buffer[4:]).split(b"\x00", 1)[0]
        self.errmsg = message.decode('ascii', errors='replace')
        logger.debug(f"ERR packet - errorcode: {self.errorcode}, message: {self.errmsg}")

        return self

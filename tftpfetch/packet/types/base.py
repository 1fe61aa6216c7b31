import struct
import logging

from tftpfetch.shared import MAX_PACKET_SIZE, Mode
from tftpfetch.exceptions import EncodingError, MalformedPacketError

logger = logging.getLogger('tftpfetch.packet.types.base')

class TftpPacket:
    """This class is the parent class of all tftp packet classes. It is an
    abstract class, providing an interface, and should not be instantiated
    directly.

    Each instance owns its own buffer. Nothing is shared between a packet
    that was received and one that is being built to send."""

    # Smallest valid datagram for this packet type, opcode included.
    min_length = 2

    def __init__(self) -> None:
        self.opcode = 0
        self.buffer = None

    def encode(self) -> 'TftpPacket':
        """The encode method of a TftpPacket packs an appropriate buffer in
        network-byte order suitable for sending over the wire, from the
        instance variables.

        This is an abstract method."""
        raise NotImplementedError

    def decode(self) -> 'TftpPacket':
        """The decode method of a TftpPacket takes a buffer off of the wire in
        network-byte order, and decodes it, populating internal properties as
        appropriate. This can only be done once the first 2-byte opcode has
        already been decoded, but the data section does include the entire
        datagram.

        This is an abstract method."""
        raise NotImplementedError

    def check_length(self) -> None:
        """Make sure the buffer is long enough for this packet's header.

        Raises:
            MalformedPacketError: buffer is missing or too short
        """

        if self.buffer is None or len(self.buffer) < self.min_length:
            size = 0 if self.buffer is None else len(self.buffer)
            raise MalformedPacketError(
                f"{type(self).__name__} packet too short: {size} bytes, "
                f"need at least {self.min_length}")


class TftpPacketInitial(TftpPacket):
    """This class is a common parent class for request packets.

          2 bytes    string    1 byte    string    1 byte
          -----------------------------------------------
         | 01/02 |  Filename  |   0  |    Mode    |   0  |
          -----------------------------------------------
    """

    modes = (Mode.OCTET, Mode.NETASCII)

    def __init__(self, filename: str = None, mode: str = Mode.OCTET) -> None:
        super().__init__()
        self.filename = filename
        self.mode = mode

    @staticmethod
    def _to_bytes(name: str, value) -> bytes:
        if isinstance(value, bytes):
            return value
        try:
            return value.encode('ascii')
        except (AttributeError, UnicodeEncodeError) as err:
            raise EncodingError(f"{name} must be an ASCII string: {value!r}") from err

    def encode(self) -> 'TftpPacketInitial':
        """Encode the packet's buffer from the instance variables.

        Raises:
            EncodingError: empty filename, embedded null, unsupported mode
                or a packet larger than MAX_PACKET_SIZE

        Returns:
            TftpPacketInitial: self
        """

        if not self.filename:
            raise EncodingError("filename required in initial packet")
        if not self.mode:
            raise EncodingError("mode required in initial packet")

        # Make sure filename and mode are bytestrings.
        filename = self._to_bytes("filename", self.filename)
        mode = self._to_bytes("mode", self.mode)

        if b"\x00" in filename:
            raise EncodingError("filename contains a null byte")
        if b"\x00" in mode:
            raise EncodingError("mode contains a null byte")
        if mode.lower().decode('ascii') not in self.modes:
            raise EncodingError(f"Unsupported mode: {mode}")

        fmt = b"!H%dsx%dsx" % (len(filename), len(mode))
        size = struct.calcsize(fmt)
        if size > MAX_PACKET_SIZE:
            raise EncodingError(f"request packet too large: {size} bytes "
                                f"(max: {MAX_PACKET_SIZE})")

        logger.debug(f"Encoding {self}, {size} bytes")
        self.buffer = struct.pack(fmt, self.opcode, filename, mode)
        return self

    def decode(self) -> 'TftpPacketInitial':
        """Decode the buffer

        Raises:
            MalformedPacketError: filename or mode is not null terminated

        Returns:
            TftpPacketInitial: self
        """

        self.check_length()
        fields = self.buffer[2:].split(b"\x00")

        # A well formed request leaves an empty field after the mode's null.
        if len(fields) < 3:
            raise MalformedPacketError("malformed request packet, missing null terminator")

        self.filename = fields[0].decode('ascii', errors='replace')
        self.mode = fields[1].decode('ascii', errors='replace').lower()
        logger.debug(f"decoded request: filename = {self.filename}, mode = {self.mode}")
        return self

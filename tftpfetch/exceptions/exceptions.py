from tftpfetch.shared import TftpErrors

class TftpException(Exception):
    """This class is the parent class of all exceptions regarding the handling
    of the TFTP protocol."""

    error_code = None

    def __init__(self, message, *args, error_code=None, **kwargs):
        if isinstance(error_code, int):
            self.error_code = error_code

        super().__init__(message, *args, **kwargs)


class EncodingError(TftpException):
    """A packet could not be built from the values supplied by the caller,
    e.g. a filename with an embedded null or a request over 516 bytes."""
    pass


class TransportError(TftpException):
    """The socket failed to send or receive. The OS error text is kept in
    the message and the original error is chained."""
    pass


class TftpTimeout(TftpException):
    """This class represents a timeout error waiting for a response from the
    other end."""
    pass


class ProtocolError(TftpException):
    """The peer sent something well formed but not valid at this point of
    the transfer."""
    error_code = TftpErrors.ILLEGALTFTPOP


class MalformedPacketError(ProtocolError):
    """A datagram is too short to hold the header its opcode calls for."""
    pass


class RemoteError(TftpException):
    """The server ended the transfer with an ERROR packet.

    Attributes:
        code (int): error code reported by the server
        errmsg (str): the server's message, verbatim
    """

    def __init__(self, code: int, message: str = "") -> None:
        self.code = code
        self.errmsg = message
        super().__init__(f"Received ERR {code} from server: {message}", error_code=code)


class TftpFileNotFoundError(RemoteError):
    """This class represents an error condition where we received a file
    not found error."""
    pass

from .exceptions import (
    TftpException,
    EncodingError,
    TransportError,
    TftpTimeout,
    ProtocolError,
    MalformedPacketError,
    RemoteError,
    TftpFileNotFoundError,
)

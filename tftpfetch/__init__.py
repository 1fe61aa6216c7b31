# vim: ts=4 sw=4 et ai:
# -*- coding: utf8 -*-
"""
This library implements the client side of the TFTP read path, as described
in RFC 1350. Create a TftpClient and call request() to get a file's contents,
or download() to copy them to a file.
"""

from .shared import Opcode, Mode, TftpErrors, TransferState
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
from .client import TftpClient
from .context import Download

# vim: ts=4 sw=4 et ai:
# -*- coding: utf8 -*-

"""This module holds all objects shared by all other modules in tftpfetch."""

import enum

DEF_BLKSIZE = 512
MAX_PACKET_SIZE = DEF_BLKSIZE + 4
SOCK_TIMEOUT = 5
MAX_DUPS = 20
TIMEOUT_RETRIES = 5
DEF_TFTP_PORT = 69
MAX_BLOCKNUMBER = 2 ** 16


class Opcode(enum.IntEnum):
    """The TFTP opcodes, sent as the first two bytes of every packet."""
    RRQ = 1
    WRQ = 2
    DATA = 3
    ACK = 4
    ERROR = 5


class Mode:
    """Transfer modes. Only octet is used for downloads, netascii is passed
    through to the server untranslated."""
    OCTET = 'octet'
    NETASCII = 'netascii'


class TftpErrors:
    """This class is a convenience for defining the common tftp error codes,
    and making them more readable in the code."""
    NOTDEFINED = 0
    FILENOTFOUND = 1
    ACCESSVIOLATION = 2
    DISKFULL = 3
    ILLEGALTFTPOP = 4
    UNKNOWNTID = 5
    FILEALREADYEXISTS = 6
    NOSUCHUSER = 7
    FAILEDNEGOTIATION = 8

    messages = {
        NOTDEFINED: "Not defined",
        FILENOTFOUND: "File not found",
        ACCESSVIOLATION: "Access violation",
        DISKFULL: "Disk full or allocation exceeded",
        ILLEGALTFTPOP: "Illegal TFTP operation",
        UNKNOWNTID: "Unknown transfer ID",
        FILEALREADYEXISTS: "File already exists",
        NOSUCHUSER: "No such user",
        FAILEDNEGOTIATION: "Failed to negotiate options",
    }


class TransferState(enum.Enum):
    """Lifecycle of a single download."""
    IDLE = 'idle'
    REQUESTING = 'requesting'
    AWAITING_BLOCK = 'awaiting block'
    COMPLETED = 'completed'
    FAILED = 'failed'

    @property
    def terminal(self) -> bool:
        return self in (TransferState.COMPLETED, TransferState.FAILED)

from .base import TftpPacket, TftpPacketInitial
from .request import ReadRQ
from .data import Data
from .acknowledge import Ack
from .error import Error
from .unknown import Unknown

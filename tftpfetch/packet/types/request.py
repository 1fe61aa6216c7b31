from .base import TftpPacketInitial

class ReadRQ(TftpPacketInitial):
    """
    Read Request
          2 bytes    string    1 byte    string    1 byte
          -----------------------------------------------
    RRQ  |  01   |  Filename  |   0  |    Mode    |   0  |
          -----------------------------------------------
    """

    def __init__(self, filename: str = None, mode: str = 'octet') -> None:
        super().__init__(filename, mode)
        self.opcode = 1

    def __str__(self) -> str:
        return f"RRQ packet: filename = {self.filename} mode = {self.mode}"

from .base import TftpPacket

class Unknown(TftpPacket):
    """A packet whose opcode is not handled by this client. Only the opcode
    is kept, the session decides what to do with it."""

    def __init__(self, opcode: int = 0) -> None:
        super().__init__()
        self.opcode = opcode

    def __str__(self) -> str:
        return f"packet with opcode {self.opcode}"

    def decode(self) -> 'Unknown':
        self.check_length()
        return self

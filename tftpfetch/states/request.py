import logging

from typing import Optional

from tftpfetch.packet import types
from .base import ExpectData

logger = logging.getLogger('tftpfetch.states.request')

class SentReadRQ(ExpectData):
    """Just sent an RRQ packet. The first reply fixes the address and port
    the rest of the transfer talks to."""

    def handle(self, pkt: types.TftpPacket, raddress: str, rport: int) -> Optional[ExpectData]:
        """Handle the packet in response to an RRQ to the server."""

        context = self.context
        if raddress != context.address:
            logger.info(f"Server {context.host} answered from {raddress}")
            context.address = raddress

        context.tidport = rport
        logger.info(f"Set remote port for session to {rport}")

        return super().handle(pkt, raddress, rport)

import logging

from typing import Optional

from tftpfetch.shared import TftpErrors, MAX_DUPS
from tftpfetch.exceptions import (ProtocolError, RemoteError,
                                  TftpFileNotFoundError)
from tftpfetch.packet import types

logger = logging.getLogger('tftpfetch.states.base')

class TftpState:
    """The base class for the states."""

    def __init__(self, context: 'tftpfetch.context.Context') -> None:
        """Constructor for setting up common instance variables."""

        self.context = context

    def __str__(self) -> str:
        return type(self).__name__

    def handle(self, pkt: types.TftpPacket, raddress: str, rport: int) -> Optional['TftpState']:
        """An abstract method for handling a packet. It is expected to return
        a TftpState object, either itself or a new state, or None once the
        transfer is complete."""

        raise NotImplementedError

    def send_ack(self, blocknumber: int = None) -> None:
        """This method sends an ack packet to the block number specified. If
        none is specified, it defaults to the next_block property in the
        parent context.

        Args:
            blocknumber (int, optional): Block number to acknowledge
        """

        if blocknumber is None:
            blocknumber = self.context.next_block

        logger.info(f"Sending ack to block {blocknumber}")
        self.context.send(types.Ack(blocknumber))

    def resend_last(self) -> None:
        """Resend the last sent packet due to a timeout."""

        context = self.context
        logger.warning(f"Resending packet {context.last_pkt} on session {context}")
        context.metrics.resent_bytes += len(context.last_pkt.buffer)
        # If the tidport wasn't set, then the remote end hasn't even started
        # talking to us yet and the request goes to the server port again.
        context.send(context.last_pkt)

    def protocol_error(self, message: str) -> None:
        """Abort the transfer: tell the server, then raise.

        Raises:
            ProtocolError: always
        """

        logger.warning(message)
        self.context.send_error(TftpErrors.ILLEGALTFTPOP)
        raise ProtocolError(message)

    def handle_err(self, pkt: types.Error) -> None:
        """The server gave up on the transfer. Nothing is sent back.

        Raises:
            RemoteError: always, TftpFileNotFoundError for error code 1
        """

        logger.error(f"Received ERR packet from server: {pkt}")
        if pkt.errorcode == TftpErrors.FILENOTFOUND:
            raise TftpFileNotFoundError(pkt.errorcode, pkt.errmsg)
        raise RemoteError(pkt.errorcode, pkt.errmsg)

    def handle_dat(self, pkt: types.Data) -> Optional['ExpectData']:
        """This method handles a DAT packet during a download.

        Args:
            pkt (types.Data): Data packet to handle

        Raises:
            ProtocolError: block zero before any data, too many duplicates,
                or a block out of sequence in strict mode

        Returns:
            ExpectData: next state, None once a short block ends the transfer
        """

        context = self.context
        logger.info(f"Handling DAT packet - block {pkt.blocknumber}")
        logger.debug(f"Expecting block {context.next_block}")

        if pkt.blocknumber == context.next_block:
            logger.debug(f"Good, received block {pkt.blocknumber} in sequence")

            context.deliver(pkt.data)
            self.send_ack(pkt.blocknumber)
            context.last_acked = pkt.blocknumber
            context.dups_in_a_row = 0
            context.next_block += 1

            # Check for end-of-file, any less than full data packet.
            if len(pkt.data) < context.block_size:
                logger.info("End of file detected")
                return None

        elif context.last_acked is not None and pkt.blocknumber == context.last_acked:
            logger.warning(f"Dropping duplicate block {pkt.blocknumber}")
            context.metrics.add_dup(pkt)
            context.dups_in_a_row += 1
            if context.dups_in_a_row >= MAX_DUPS:
                self.protocol_error("Max duplicates reached")

            logger.debug(f"ACKing block {pkt.blocknumber} again, our ACK was probably lost")
            self.send_ack(pkt.blocknumber)

        elif context.last_acked is None and pkt.blocknumber == 0:
            self.protocol_error("There is no block zero!")

        elif context.strict_sequence:
            self.protocol_error(f"Received block {pkt.blocknumber} "
                                f"but expected {context.next_block}")

        else:
            logger.warning(f"Whoa! Received block {pkt.blocknumber} but expected "
                           f"{context.next_block}. Discarding.")
            context.metrics.add_out_of_order(pkt)

        return ExpectData(context)


class ExpectData(TftpState):
    """Just sent an ACK packet. Waiting for DAT."""

    def handle(self, pkt: types.TftpPacket, raddress: str, rport: int) -> Optional['ExpectData']:
        """Handle the packet in response to an ACK, which should be a DAT.

        Raises:
            RemoteError: the server sent an ERR packet
            ProtocolError: any other packet type

        Returns:
            ExpectData: Return next state class, either ExpectData or None if we received a short packet
        """

        if isinstance(pkt, types.Data):
            return self.handle_dat(pkt)

        elif isinstance(pkt, types.Error):
            self.handle_err(pkt)

        # Every other packet type is a problem.
        self.protocol_error(f"Received unexpected {pkt} from server while expecting DAT")

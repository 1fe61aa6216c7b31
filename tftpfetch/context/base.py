import logging
import socket

from tftpfetch.shared import (DEF_TFTP_PORT, DEF_BLKSIZE, MAX_PACKET_SIZE,
                              MAX_BLOCKNUMBER, SOCK_TIMEOUT, TIMEOUT_RETRIES,
                              TftpErrors, TransferState)
from tftpfetch.exceptions import (TftpException, TftpTimeout, TransportError,
                                  MalformedPacketError)
from tftpfetch.packet import types
from tftpfetch.packet.factory import PacketFactory
from .metrics import Metrics

logger = logging.getLogger('tftpfetch.context.base')

class Context:
    """The base class of the contexts."""

    def __init__(self, host: str, port: int = DEF_TFTP_PORT,
                 timeout: float = SOCK_TIMEOUT, retries: int = TIMEOUT_RETRIES,
                 **kwargs) -> None:
        """Constructor for the base context, setting shared instance
        variables.

        Args:
            host (str): Host address or name
            port (int): tftp port, 0 selects the default port 69
            timeout (float): seconds to wait for each reply
            retries (int): receive attempts before giving up

        kwargs:
            filename (str): Filename to receive
            mode (str): Transfer mode, defaults to 'octet'
            packethook (func): function to receive a copy of every accepted packet
            localip (str): Address to bind the socket to
            sock (socket.socket): An already created UDP socket to use instead
                of creating one. The context takes ownership of it.
        """

        if port == 0:
            port = DEF_TFTP_PORT
        if not 0 < port < 65536:
            raise ValueError("port must be between 1 and 65535")
        if timeout is None or timeout <= 0:
            raise ValueError("timeout must be a positive number of seconds")
        if retries < 1:
            raise ValueError("retries must be at least 1")

        self.port = port
        self.timeout = timeout
        self.retries = retries
        self.file_to_transfer = kwargs.get('filename', None)
        self.mode = kwargs.get('mode', "octet")
        self.packethook = kwargs.get('packethook', None)
        localip = kwargs.get('localip', None)

        # Note, setting the host will also set self.address, as it's a property.
        self.host = host

        self.sock = kwargs.get('sock', None)
        if self.sock is None:
            self.sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
            if localip:
                self.sock.bind((localip, 0))
        self.sock.settimeout(timeout)
        self.closed = False

        self.block_size = DEF_BLKSIZE
        self.state = None
        self.status = TransferState.IDLE
        self.factory = PacketFactory()
        self.next_block = 0
        # The port associated with the TID, learned from the first reply.
        self.tidport = None
        # Metrics
        self.metrics = Metrics()
        # The last packet we sent, if applicable, to make resending easy.
        self.last_pkt = None
        # Count the number of retry attempts.
        self.retry_count = 0
        self.failure = None

    @property
    def host(self) -> str:
        "Get the host address or name"

        return self.__host

    @host.setter
    def host(self, host: str) -> None:
        """Sets the address property as a result of the host that is set."""

        self.__host = host
        try:
            self.address = socket.gethostbyname(host)
        except OSError as err:
            raise TransportError(f"Could not resolve {host}: {err}") from err

    @property
    def peer(self) -> tuple:
        """Where packets for this transfer are sent. Until the server answers
        this is the request port, afterwards its transfer ID."""

        return (self.address, self.tidport or self.port)

    @property
    def next_block(self) -> int:
        """Gets the next_block"""
        return self.__eblock

    @next_block.setter
    def next_block(self, block: int) -> None:
        """Sets the next block or roles over if greater than 2^16 blocks"""

        if block >= MAX_BLOCKNUMBER:
            logger.debug("Block number rollover to 0 again")
        self.__eblock = block % MAX_BLOCKNUMBER

    def __str__(self) -> str:
        return f"{self.host}:{self.port} {self.state}"

    def __del__(self) -> None:
        """Simple destructor to try to call housekeeping in the end method if
        not called explicitely. Leaking file descriptors is not a good
        thing."""

        if not getattr(self, 'closed', True):
            self.end()

    def start(self) -> None:
        raise NotImplementedError

    def end(self) -> None:
        """Perform session cleanup. Safe to call more than once, and from
        outside the receive loop to abandon the transfer."""

        if self.closed:
            return

        logger.debug("in Context.end - closing socket")
        self.closed = True
        self.sock.close()
        if not self.status.terminal:
            logger.info(f"Transfer from {self.host} abandoned")
            self.status = TransferState.FAILED
            if self.failure is None:
                self.failure = TransportError("Session ended before the transfer finished")

    def fail(self, err: TftpException) -> None:
        """Move the session to its failed state, keeping the error."""

        logger.error(f"Transfer failed: {err}")
        self.metrics.errors += 1
        self.failure = err
        self.status = TransferState.FAILED

    def send(self, pkt: types.TftpPacket, address: tuple = None) -> None:
        """Handles all the packet sending operations.

        Args:
            pkt (types.TftpPacket): packet to encode and send
            address (tuple, optional): destination, defaults to the peer

        Raises:
            EncodingError: the packet could not be encoded
            TransportError: the socket refused the datagram
        """

        buffer = pkt.encode().buffer
        address = address or self.peer
        logger.debug(f"Sending {pkt} to {address[0]}:{address[1]}")

        try:
            self.sock.sendto(buffer, address)
        except OSError as err:
            raise TransportError(f"Failed to send {pkt}: {err}") from err

        self.last_pkt = pkt

    def send_error(self, errorcode: int, address: tuple = None) -> None:
        """Tell the other end the transfer is over. A failure to send is
        only logged, the caller already has an error to report.

        Args:
            errorcode (int): The error code to respond with. Details can be
                found in shared.TftpErrors
            address (tuple, optional): destination, defaults to the peer
        """

        logger.debug(f"In send_error, being asked to send error {errorcode}")
        errpkt = types.Error(errorcode)
        last_pkt = self.last_pkt
        try:
            self.send(errpkt, address)
        except TransportError as err:
            logger.warning(f"Could not send error packet: {err}")
        finally:
            # An error is never the packet to resend on timeout.
            self.last_pkt = last_pkt

    def cycle(self) -> None:
        """Here we wait for a response from the server after sending it
        something, and dispatch appropriate action to that response.

        Raises:
            TftpTimeout: nothing arrived within the timeout
            TransportError: the socket failed
            ProtocolError: the peer sent something we can't accept
        """

        try:
            (buffer, raddr) = self.sock.recvfrom(MAX_PACKET_SIZE)
        except socket.timeout:
            logger.warning("Timeout waiting for traffic")
            raise TftpTimeout("Timed-out waiting for traffic")
        except OSError as err:
            raise TransportError(f"Failed to receive data: {err}") from err

        (raddress, rport) = raddr[:2]
        logger.debug(f"Received {len(buffer)} bytes from {raddress}:{rport}")

        # Check for known "connection".
        if self.tidport is not None and (raddress, rport) != self.peer:
            logger.warning(f"Received traffic from {raddress}:{rport} but we're "
                           f"connected to {self.address}:{self.tidport}. Discarding.")
            self.metrics.errors += 1
            self.send_error(TftpErrors.UNKNOWNTID, (raddress, rport))
            return

        try:
            recvpkt = self.factory.parse(buffer)
        except MalformedPacketError:
            # Before the first reply the peer is still the request port.
            address = (raddress, rport) if self.tidport is None else None
            self.send_error(TftpErrors.ILLEGALTFTPOP, address)
            raise

        # If there is a packethook defined, call it. We unconditionally
        # pass all packets, it's up to the client to screen out different
        # kinds of packets.
        if self.packethook:
            self.packethook(recvpkt)

        # And handle it, possibly changing state.
        self.state = self.state.handle(recvpkt, raddress, rport)
        # If we didn't throw any exceptions here, reset the retry_count to
        # zero.
        self.retry_count = 0

import logging
import os
import sys
import time

from typing import Union, Tuple, Optional
from io import IOBase

from .base import Context
from tftpfetch.shared import TransferState, TftpErrors
from tftpfetch.packet import types
from tftpfetch.exceptions import (TftpException, TftpTimeout, TransportError,
                                  TftpFileNotFoundError)
from tftpfetch.states import SentReadRQ

logger = logging.getLogger('tftpfetch.context.client')

class Download(Context):
    """The download context for the client during a download.
    Note: If output is a hyphen, then the output will be sent to stdout."""

    def __init__(self, host: str, port: int, timeout: float,
                 output: Union[IOBase, str] = None, **kwargs) -> None:
        """Initalize the Download context with the server and, optionally,
        where to copy the data as it arrives. The data is always kept in
        memory for result().

        Args:
            host (str): Server Address
            port (int): Server port
            timeout (float): Socket Timeout
            output (Union[IOBase,str], optional): Output sink, can be one of
                - An open file object
                - A path to a file
                - '-' indicating write to STDOUT

        kwargs:
            strict_sequence (bool): fail on a block number that is neither
                the expected one nor a duplicate of the last. Defaults to True.
            Everything Context accepts.

        Raises:
            TftpException: unable to open the destination file for writing
        """

        super().__init__(host, port, timeout, **kwargs)

        self.strict_sequence = kwargs.get('strict_sequence', True)
        self.last_acked = None
        # Copies of last_acked received since it was first accepted.
        self.dups_in_a_row = 0
        self.received = bytearray()
        self.fileobj = None
        self.filelike_fileobj = True

        # If the output object has a write() function, assume it is file-like.
        if output is None or hasattr(output, 'write'):
            self.fileobj = output
        # If the output filename is -, then use stdout
        elif output == '-':
            self.fileobj = sys.stdout.buffer
        else:
            try:
                self.fileobj = open(output, "wb")
            except OSError as err:
                self.end()
                raise TftpException(f"Could not open output file: {err}") from err
            self.filelike_fileobj = False

        logger.debug("tftpfetch.context.client.Download.__init__()")
        logger.debug(f" file_to_transfer = {self.file_to_transfer}, mode = {self.mode}")

    def deliver(self, data: bytes) -> None:
        """Accept the payload of an in-sequence block."""

        self.received += data
        self.metrics.bytes += len(data)
        if self.fileobj is not None:
            logger.debug(f"Writing {len(data)} bytes to output file")
            try:
                self.fileobj.write(data)
            except OSError as err:
                self.send_error(TftpErrors.DISKFULL)
                raise TransportError(f"Could not write output: {err}") from err

    def start(self) -> None:
        """Initiate the download and run it until it completes or fails. The
        socket is released either way.

        Raises:
            EncodingError: the request could not be built
            TransportError: the socket failed
            TftpTimeout: Failed to get an answer within the retry budget
            RemoteError: the server sent an ERR packet
            TftpFileNotFoundError: Recieved a File not found error
            ProtocolError: the server broke the protocol
        """

        if self.status is not TransferState.IDLE:
            raise TftpException(f"Transfer already started, state is {self.status.value}")

        logger.info(f"Sending tftp download request to {self.host}")
        logger.info(f"    filename -> {self.file_to_transfer}")

        self.metrics.start_time = time.time()
        logger.debug(f"Set metrics.start_time to {self.metrics.start_time}")

        try:
            self.status = TransferState.REQUESTING
            self.send(types.ReadRQ(self.file_to_transfer, self.mode))
            self.next_block = 1
            self.state = SentReadRQ(self)
            self.status = TransferState.AWAITING_BLOCK

            while self.state:
                try:
                    logger.debug(f"State is {self.state}")
                    self.cycle()

                except TftpTimeout as err:
                    self.retry_count += 1
                    self.metrics.timeouts += 1
                    if self.retry_count >= self.retries:
                        logger.debug("hit max retries, giving up")
                        raise TftpTimeout(f"No response after {self.retries} attempts") from err
                    else:
                        logger.warning("resending last packet")
                        self.state.resend_last()

        except TftpFileNotFoundError as err:
            # If we received file not found, then we should not save the open
            # output file or we'll be left with a size zero file. Delete it,
            # if it exists.
            self.fail(err)
            self.end()
            if not self.filelike_fileobj and os.path.exists(self.fileobj.name):
                logger.debug(f"unlinking output file of {self.fileobj.name}")
                os.unlink(self.fileobj.name)
            raise

        except TftpException as err:
            self.fail(err)
            raise

        else:
            self.status = TransferState.COMPLETED
            logger.info(f"Received {self.metrics.bytes} bytes of {self.file_to_transfer}")

        finally:
            self.end()

    def end(self) -> None:
        """Finish up the context."""

        if self.closed:
            return

        super().end()
        if self.fileobj is not None and not self.filelike_fileobj and not self.fileobj.closed:
            logger.debug("self.fileobj is open - closing")
            self.fileobj.close()

        self.metrics.end_time = time.time()
        logger.debug(f"Set metrics.end_time to {self.metrics.end_time}")
        self.metrics.compute()

    def result(self) -> Tuple[bytes, int]:
        """The downloaded file and its size.

        Raises:
            TftpException: the transfer has not completed

        Returns:
            Tuple[bytes, int]: data and byte count
        """

        if self.status is not TransferState.COMPLETED:
            raise TftpException(f"No result, transfer is {self.status.value}")
        return bytes(self.received), self.metrics.bytes

    def error(self) -> Optional[TftpException]:
        """The error that ended a failed transfer, None otherwise."""

        if self.status is not TransferState.FAILED:
            return None
        return self.failure

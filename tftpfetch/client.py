# vim: ts=4 sw=4 et ai:
# -*- coding: utf8 -*-
"""This module implements the TFTP Client functionality. Instantiate an
instance of the client, and then use its request or download method. Logging
is performed via the standard python logging module."""

import logging

from typing import Callable, Tuple, TypeVar, Union

from tftpfetch.shared import DEF_TFTP_PORT, SOCK_TIMEOUT, TIMEOUT_RETRIES, Mode
from tftpfetch.context import Download

logger = logging.getLogger('tftpfetch.client')

file_object = TypeVar('file_object')

class TftpClient:
    """This class is an implementation of a read-only tftp client. Each call
    to request() or download() runs one transfer on its own socket."""

    def __init__(self, host: str, port: int = None, localip: str = None) -> None:
        """Initialize the TFTP client class

        Args:
            host (str): The server for which you are connecting to
            port (int, optional): The server port. Defaults to 69.
            localip (str, optional): The source ip for all requests. Defaults to None.
        """

        self.context = None
        self.host = host
        self.iport = port or DEF_TFTP_PORT
        self.localip = localip

    def _run(self, filename: str, output: Union[file_object, str, None],
             mode: str, packethook: Callable, timeout: float, retries: int,
             **kwargs) -> Download:
        logger.debug("Creating download context with the following params:")
        logger.debug(f" host = {self.host}, port = {self.iport}, filename = {filename}")
        logger.debug(f" mode = {mode}, packethook = {packethook}, timeout = {timeout}, retries = {retries}")
        self.context = Download(self.host,
                                self.iport,
                                timeout,
                                output,
                                retries = retries,
                                mode = mode,
                                packethook = packethook,
                                filename = filename,
                                localip = self.localip,
                                **kwargs)

        # Download happens here
        self.context.start()

        metrics = self.context.metrics
        logger.info("Download complete.")
        if metrics.duration == 0:
            logger.info("Duration too short, rate undetermined")
        else:
            logger.info(f"Downloaded {metrics.bytes} bytes in {metrics.duration:.2f} seconds")
            logger.info(f"Average rate: {metrics.kbps:.2f} kbps")
        logger.info(f"{metrics.resent_bytes} bytes in resent data")
        logger.info(f"Received {metrics.dupcount} duplicate packets")

        return self.context

    def request(self, filename: str, mode: str = Mode.OCTET,
                packethook: Callable[['tftpfetch.packet.types.Data'], None] = None,
                timeout: float = SOCK_TIMEOUT, retries: int = TIMEOUT_RETRIES,
                **kwargs) -> Tuple[bytes, int]:
        """Fetch filename from the server and return it.

        Args:
            filename (str): The name of the file to request from the server
            mode (str, optional): Transfer mode. Defaults to 'octet'.
            packethook (Callable, optional): A funtion to recieve a copy of
                every packet accepted from the server. Defaults to None.
            timeout (float, optional): Seconds to wait for each reply. Defaults to SOCK_TIMEOUT.
            retries (int, optional): Attempts before giving up. Defaults to TIMEOUT_RETRIES.

        Raises:
            TftpException: the transfer failed, see tftpfetch.exceptions

        Returns:
            Tuple[bytes, int]: the file contents and the number of bytes
        """

        return self._run(filename, None, mode, packethook, timeout, retries, **kwargs).result()

    def download(self, filename: str, output: Union[file_object, str],
                 packethook: Callable[['tftpfetch.packet.types.Data'], None] = None,
                 timeout: float = SOCK_TIMEOUT, retries: int = TIMEOUT_RETRIES,
                 **kwargs) -> int:
        """This method initiates a tftp download from the configured remote
        host, requesting the filename passed. A packethook may be passed for the
        use of building a UI or to perform additional action on the recieve data.

        Args:
            filename (str): The name of the file to request from the server
            output (str): Where to save the file. Can be either a file-name/path,
                            a file-like object or a '-' for stdout
            packethook (Callable, optional): A funtion to recieve a copy of the
                            Data object recieved. Defaults to None.
            timeout (float, optional): Time out period for the request. Defaults to SOCK_TIMEOUT.
            retries (int, optional): Attempts before giving up. Defaults to TIMEOUT_RETRIES.

        Returns:
            int: bytes received
        """

        return self._run(filename, output, Mode.OCTET, packethook, timeout, retries, **kwargs).metrics.bytes

import io
import os
import errno
import socket
import struct
import unittest

from tempfile import TemporaryDirectory

from tftpfetch import context
from tftpfetch import states
from tftpfetch.packet import types
from tftpfetch.shared import TransferState, TftpErrors, MAX_DUPS
from tftpfetch.exceptions import (TftpException, TftpTimeout, TransportError,
                                  ProtocolError, MalformedPacketError,
                                  RemoteError, TftpFileNotFoundError,
                                  EncodingError)

SERVER = ('127.0.0.1', 69)
TID = ('127.0.0.1', 50000)


def data(block, payload):
    return types.Data(block, payload).encode().buffer

def error(code, message):
    return types.Error(code, message).encode().buffer


class MockSocket:
    """Stands in for a UDP socket. recvfrom() hands out the scripted replies
    in order, an exception instance in the script is raised instead, and an
    empty script means the server went quiet."""

    def __init__(self, responses=(), send_error=None):
        self._responses = list(responses)
        self.send_error = send_error
        self.sent = []
        self.recv_calls = 0
        self.timeout = None
        self.closed = False

    def settimeout(self, timeout):
        self.timeout = timeout

    def sendto(self, buffer, address):
        if self.send_error is not None:
            raise self.send_error
        self.sent.append((buffer, address))
        return len(buffer)

    def recvfrom(self, size):
        self.recv_calls += 1
        if not self._responses:
            raise socket.timeout("timed out")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    def close(self):
        self.closed = True

    @property
    def remaining(self):
        return len(self._responses)

    def sent_packets(self):
        parsed = []
        for buffer, address in self.sent:
            (opcode,) = struct.unpack("!H", buffer[:2])
            if opcode == 1:
                pkt = types.ReadRQ()
            elif opcode == 4:
                pkt = types.Ack()
            else:
                pkt = types.Error()
            pkt.buffer = buffer
            parsed.append((pkt.decode(), address))
        return parsed

    def acks(self):
        return [pkt.blocknumber for pkt, _ in self.sent_packets() if isinstance(pkt, types.Ack)]


def download(responses, filename='report.bin', **kwargs):
    sock = MockSocket(responses)
    ctx = context.Download(SERVER[0], SERVER[1], 5, filename=filename, sock=sock, **kwargs)
    return ctx, sock


class TestTftpDownloadContext(unittest.TestCase):

    def test_context_client_download(self):
        ctx, sock = download([
            (data(1, b"a" * 512), TID),
            (data(2, b"b" * 200), TID),
        ])
        self.assertEqual(ctx.status, TransferState.IDLE)
        self.assertEqual(sock.timeout, 5)
        ctx.start()

        self.assertEqual(ctx.status, TransferState.COMPLETED)
        buffer, count = ctx.result()
        self.assertEqual(count, 712)
        self.assertEqual(buffer, b"a" * 512 + b"b" * 200)
        self.assertIsNone(ctx.error())
        self.assertIsNone(ctx.state)
        self.assertTrue(sock.closed)

        sent = sock.sent_packets()
        self.assertEqual(len(sent), 3)
        rrq, address = sent[0]
        self.assertIsInstance(rrq, types.ReadRQ)
        self.assertEqual((rrq.filename, rrq.mode), ("report.bin", "octet"))
        self.assertEqual(address, SERVER)
        # ACKs follow the server to its transfer port.
        self.assertEqual(sock.acks(), [1, 2])
        self.assertEqual([address for _, address in sent[1:]], [TID, TID])

    def test_context_full_blocks_then_short(self):
        blocks = [(data(n, bytes([n]) * 512), TID) for n in range(1, 6)]
        blocks.append((data(6, b"z" * 77), TID))
        ctx, sock = download(blocks)
        ctx.start()
        self.assertEqual(ctx.result()[1], 512 * 5 + 77)
        self.assertEqual(sock.acks(), [1, 2, 3, 4, 5, 6])

    def test_context_empty_final_block(self):
        ctx, sock = download([
            (data(1, b"a" * 512), TID),
            (data(2, b"b" * 512), TID),
            (data(3, b""), TID),
        ])
        ctx.start()
        self.assertEqual(ctx.result(), (b"a" * 512 + b"b" * 512, 1024))
        self.assertEqual(sock.acks(), [1, 2, 3])

    def test_context_empty_file(self):
        ctx, sock = download([(data(1, b""), TID)])
        ctx.start()
        self.assertEqual(ctx.result(), (b"", 0))

    def test_context_duplicate_block(self):
        # The ACK for block 1 is lost and the server sends block 1 again.
        ctx, sock = download([
            (data(1, b"a" * 512), TID),
            (data(1, b"a" * 512), TID),
            (data(2, b"end"), TID),
        ])
        ctx.start()
        self.assertEqual(ctx.result(), (b"a" * 512 + b"end", 515))
        self.assertEqual(sock.acks(), [1, 1, 2])
        self.assertEqual(ctx.metrics.dupcount, 1)

    def test_context_too_many_duplicates(self):
        responses = [(data(1, b"a" * 512), TID)] * (MAX_DUPS + 1)
        ctx, sock = download(responses)
        self.assertRaises(ProtocolError, ctx.start)
        self.assertEqual(ctx.status, TransferState.FAILED)

    def test_context_duplicates_spread_out(self):
        # Every lost ACK is recovered by one resend, many times over.
        responses = []
        for n in range(1, 31):
            responses.append((data(n, bytes([n]) * 512), TID))
            if n <= 25:
                responses.append((data(n, bytes([n]) * 512), TID))
        responses.append((data(31, b"end"), TID))
        ctx, sock = download(responses)
        ctx.start()
        self.assertEqual(ctx.status, TransferState.COMPLETED)
        self.assertEqual(ctx.result()[1], 512 * 30 + 3)
        self.assertEqual(ctx.metrics.dupcount, 25)
        self.assertGreater(ctx.metrics.dupcount, MAX_DUPS)

    def test_context_timeout(self):
        ctx, sock = download([], retries=5)
        self.assertRaises(TftpTimeout, ctx.start)
        self.assertIsInstance(ctx.state, states.SentReadRQ)
        self.assertEqual(ctx.status, TransferState.FAILED)
        self.assertIsInstance(ctx.error(), TftpTimeout)
        self.assertEqual(sock.recv_calls, 5)
        # The request plus one resend per timeout but the last.
        sent = sock.sent_packets()
        self.assertEqual(len(sent), 5)
        for pkt, address in sent:
            self.assertIsInstance(pkt, types.ReadRQ)
            self.assertEqual(address, SERVER)
        self.assertTrue(sock.closed)

    def test_context_timeout_resends_ack(self):
        ctx, sock = download([
            (data(1, b"a" * 512), TID),
            socket.timeout("timed out"),
            (data(2, b"b"), TID),
        ])
        ctx.start()
        self.assertEqual(sock.acks(), [1, 1, 2])
        self.assertEqual(ctx.metrics.timeouts, 1)
        self.assertEqual(ctx.metrics.resent_bytes, 4)
        self.assertEqual(ctx.result()[1], 513)

    def test_context_retry_count_resets(self):
        # Two timeouts before each block never exhaust a budget of three.
        ctx, sock = download([
            socket.timeout(), socket.timeout(),
            (data(1, b"a" * 512), TID),
            socket.timeout(), socket.timeout(),
            (data(2, b"b"), TID),
        ], retries=3)
        ctx.start()
        self.assertEqual(ctx.metrics.timeouts, 4)
        self.assertEqual(ctx.status, TransferState.COMPLETED)

    def test_context_file_not_found(self):
        ctx, sock = download([(error(1, "File not found"), TID)])
        with self.assertRaises(TftpFileNotFoundError) as cm:
            ctx.start()
        self.assertIsInstance(cm.exception, RemoteError)
        self.assertEqual(cm.exception.code, 1)
        self.assertEqual(cm.exception.errmsg, "File not found")
        self.assertIs(ctx.error(), cm.exception)
        self.assertEqual(ctx.status, TransferState.FAILED)
        # Only the request went out, nothing answers the error.
        self.assertEqual(len(sock.sent), 1)
        self.assertRaises(TftpException, ctx.result)

    def test_context_remote_error_mid_transfer(self):
        ctx, sock = download([
            (data(1, b"a" * 512), TID),
            (error(3, "Disk full"), TID),
        ])
        with self.assertRaises(RemoteError) as cm:
            ctx.start()
        self.assertNotIsInstance(cm.exception, TftpFileNotFoundError)
        self.assertEqual((cm.exception.code, cm.exception.errmsg), (3, "Disk full"))
        self.assertEqual(sock.acks(), [1])
        self.assertEqual(len(sock.sent), 2)

    def test_context_block_out_of_sequence(self):
        ctx, sock = download([
            (data(1, b"a" * 512), TID),
            (data(2, b"b" * 512), TID),
            (data(7, b"c" * 512), TID),
            (data(3, b"d"), TID),
        ])
        self.assertRaises(ProtocolError, ctx.start)
        self.assertEqual(ctx.status, TransferState.FAILED)
        # The exchange stops at the bad block.
        self.assertEqual(sock.remaining, 1)
        self.assertEqual(sock.acks(), [1, 2])
        last, address = sock.sent_packets()[-1]
        self.assertIsInstance(last, types.Error)
        self.assertEqual(last.errorcode, TftpErrors.ILLEGALTFTPOP)
        self.assertEqual(address, TID)

    def test_context_block_out_of_sequence_tolerated(self):
        ctx, sock = download([
            (data(1, b"a" * 512), TID),
            (data(7, b"c" * 512), TID),
            (data(2, b"b"), TID),
        ], strict_sequence=False)
        ctx.start()
        self.assertEqual(ctx.result(), (b"a" * 512 + b"b", 513))
        self.assertEqual(ctx.metrics.ooocount, 1)
        self.assertEqual(sock.acks(), [1, 2])

    def test_context_block_zero(self):
        ctx, sock = download([(data(0, b"a"), TID)])
        self.assertRaises(ProtocolError, ctx.start)

    def test_context_unexpected_opcode(self):
        ctx, sock = download([(types.Ack(1).encode().buffer, TID)])
        self.assertRaises(ProtocolError, ctx.start)

        ctx, sock = download([(struct.pack("!HH", 9, 1), TID)])
        self.assertRaises(ProtocolError, ctx.start)

    def test_context_malformed_reply(self):
        ctx, sock = download([
            (data(1, b"a" * 512), TID),
            (b"\x00\x03\x00", TID),
        ])
        self.assertRaises(MalformedPacketError, ctx.start)
        self.assertIsInstance(ctx.error(), ProtocolError)

    def test_context_unknown_tid(self):
        stray = ('127.0.0.1', 40000)
        ctx, sock = download([
            (data(1, b"a" * 512), TID),
            (data(2, b"WRONG"), stray),
            (b"\x00", stray),
            (data(2, b"world"), TID),
        ])
        ctx.start()
        buffer, count = ctx.result()
        self.assertTrue(buffer.endswith(b"world"))
        self.assertEqual(count, 517)
        self.assertEqual(ctx.tidport, 50000)

        errors = [(pkt, address) for pkt, address in sock.sent_packets()
                  if isinstance(pkt, types.Error)]
        self.assertEqual(len(errors), 2)
        for pkt, address in errors:
            self.assertEqual(pkt.errorcode, TftpErrors.UNKNOWNTID)
            self.assertEqual(address, stray)

    def test_context_reply_from_other_address(self):
        other = ('127.0.0.2', 50001)
        ctx, sock = download([(data(1, b"x"), other)])
        ctx.start()
        self.assertEqual(ctx.peer, other)
        self.assertEqual(sock.sent[-1][1], other)

    def test_context_block_number_rollover(self):
        ctx, sock = download([
            (data(65535, b"a" * 512), TID),
            (data(0, b"b" * 512), TID),
            (data(1, b"c"), TID),
        ])
        # Pick the transfer up just before the block number wraps.
        ctx.tidport = TID[1]
        ctx.next_block = 65535
        ctx.last_acked = 65534
        ctx.state = states.ExpectData(ctx)
        ctx.status = TransferState.AWAITING_BLOCK

        ctx.cycle()
        self.assertEqual(ctx.next_block, 0)
        ctx.cycle()
        self.assertEqual(ctx.next_block, 1)
        ctx.cycle()
        self.assertIsNone(ctx.state)
        self.assertEqual(sock.acks(), [65535, 0, 1])
        self.assertEqual(ctx.metrics.bytes, 1025)
        ctx.end()

    def test_context_send_failure(self):
        sock = MockSocket(send_error=OSError(errno.ENETUNREACH, "Network is unreachable"))
        ctx = context.Download(SERVER[0], SERVER[1], 5, filename='report.bin', sock=sock)
        with self.assertRaises(TransportError) as cm:
            ctx.start()
        self.assertIn("Network is unreachable", str(cm.exception))
        self.assertIsInstance(cm.exception.__cause__, OSError)
        self.assertEqual(ctx.status, TransferState.FAILED)
        self.assertTrue(sock.closed)

    def test_context_receive_failure(self):
        ctx, sock = download([OSError(errno.ECONNREFUSED, "Connection refused")])
        self.assertRaises(TransportError, ctx.start)
        self.assertIsInstance(ctx.error(), TransportError)

    def test_context_bad_filename(self):
        ctx, sock = download([], filename='bad\x00name')
        self.assertRaises(EncodingError, ctx.start)
        self.assertEqual(sock.sent, [])
        self.assertEqual(ctx.status, TransferState.FAILED)

    def test_context_result_before_start(self):
        ctx, sock = download([])
        self.assertRaises(TftpException, ctx.result)
        self.assertIsNone(ctx.error())
        ctx.end()

    def test_context_single_use(self):
        ctx, sock = download([(data(1, b"x"), TID)])
        ctx.start()
        self.assertRaises(TftpException, ctx.start)

    def test_context_abandoned(self):
        ctx, sock = download([(data(1, b"x"), TID)])
        ctx.end()
        ctx.end()
        self.assertTrue(sock.closed)
        self.assertEqual(ctx.status, TransferState.FAILED)
        self.assertIsInstance(ctx.error(), TransportError)
        self.assertRaises(TftpException, ctx.start)
        self.assertEqual(sock.sent, [])

    def test_context_packethook(self):
        seen = []
        ctx, sock = download([
            (data(1, b"a" * 512), TID),
            (data(2, b"b"), TID),
        ], packethook=seen.append)
        ctx.start()
        self.assertEqual([pkt.blocknumber for pkt in seen], [1, 2])

    def test_context_output_fileobj(self):
        output = io.BytesIO()
        ctx, sock = download([
            (data(1, b"a" * 512), TID),
            (data(2, b"b"), TID),
        ], output=output)
        ctx.start()
        self.assertEqual(output.getvalue(), b"a" * 512 + b"b")
        self.assertFalse(output.closed)

    def test_context_output_write_failure(self):
        class FullDisk:
            def write(self, data):
                raise OSError(errno.ENOSPC, "No space left on device")

        ctx, sock = download([
            (data(1, b"a" * 512), TID),
            (data(2, b"b"), TID),
        ], output=FullDisk())
        with self.assertRaises(TransportError) as cm:
            ctx.start()
        self.assertIn("No space left on device", str(cm.exception))
        self.assertIsInstance(cm.exception.__cause__, OSError)
        self.assertIs(ctx.error(), cm.exception)
        self.assertEqual(ctx.status, TransferState.FAILED)
        self.assertEqual(sock.acks(), [])
        last, address = sock.sent_packets()[-1]
        self.assertIsInstance(last, types.Error)
        self.assertEqual(last.errorcode, TftpErrors.DISKFULL)
        self.assertEqual(address, TID)

    def test_context_malformed_first_reply(self):
        ctx, sock = download([(b"\x00\x03\x00", TID)])
        self.assertRaises(MalformedPacketError, ctx.start)
        last, address = sock.sent_packets()[-1]
        self.assertIsInstance(last, types.Error)
        self.assertEqual(last.errorcode, TftpErrors.ILLEGALTFTPOP)
        self.assertEqual(address, TID)

    def test_context_output_path(self):
        with TemporaryDirectory() as root:
            path = os.path.join(root, 'report.bin')
            ctx, sock = download([(data(1, b"contents"), TID)], output=path)
            ctx.start()
            with open(path, 'rb') as fileobj:
                self.assertEqual(fileobj.read(), b"contents")

    def test_context_output_path_file_not_found(self):
        with TemporaryDirectory() as root:
            path = os.path.join(root, 'report.bin')
            ctx, sock = download([(error(1, "File not found"), TID)], output=path)
            self.assertRaises(TftpFileNotFoundError, ctx.start)
            self.assertFalse(os.path.exists(path))

    def test_context_bad_settings(self):
        sock = MockSocket()
        self.assertRaises(ValueError, context.Download, '127.0.0.1', 70000, 5, sock=sock)
        self.assertRaises(ValueError, context.Download, '127.0.0.1', 69, 0, sock=sock)
        self.assertRaises(ValueError, context.Download, '127.0.0.1', 69, 5, sock=sock, retries=0)

    def test_context_default_port(self):
        ctx, sock = download([])
        self.assertEqual(ctx.port, 69)
        ctx = context.Download('127.0.0.1', 0, 5, sock=MockSocket())
        self.assertEqual(ctx.port, 69)
        ctx.end()


if __name__ == '__main__':
    unittest.main()

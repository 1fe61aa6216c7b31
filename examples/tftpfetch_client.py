#!/usr/bin/env python
# vim: ts=4 sw=4 et ai:
# -*- coding: utf8 -*-

import sys
import logging

from optparse import OptionParser

import tftpfetch

log = logging.getLogger('tftpfetch')
log.setLevel(logging.INFO)

# console handler
handler = logging.StreamHandler()
handler.setLevel(logging.DEBUG)
default_formatter = logging.Formatter('[%(asctime)s] %(message)s')
handler.setFormatter(default_formatter)
log.addHandler(handler)

def main():
    usage="""usage: %prog [options] host:file [destination]

             destination:
               - for STDOUT (default)
               path/file - file to write
               """
    parser = OptionParser(usage=usage)
    parser.add_option('-p',
                      '--port',
                      type='int',
                      help='remote port to use (default: 69)',
                      default=tftpfetch.shared.DEF_TFTP_PORT)
    parser.add_option('-t',
                      '--timeout',
                      type='float',
                      help='seconds to wait for each reply (default: 5)',
                      default=tftpfetch.shared.SOCK_TIMEOUT)
    parser.add_option('-r',
                      '--retries',
                      type='int',
                      help='attempts before giving up (default: 5)',
                      default=tftpfetch.shared.TIMEOUT_RETRIES)
    parser.add_option('-d',
                      '--debug',
                      action='store_true',
                      default=False,
                      help='upgrade logging from info to debug')
    parser.add_option('-q',
                      '--quiet',
                      action='store_true',
                      default=False,
                      help="downgrade logging from info to warning")
    parser.add_option('-l',
                      '--localip',
                      action='store',
                      dest='localip',
                      default=None,
                      help='local IP for client to bind to (ie. interface)')
    parser.add_option('--tolerate-reordering',
                      action='store_false',
                      dest='strict',
                      default=True,
                      help='discard out of sequence blocks instead of failing')
    options, args = parser.parse_args()

    if len(args) not in (1, 2):
        parser.error("Incorrect number of arguments")

    if ':' not in args[0]:
        parser.error("source must be given as host:file")
    host, src = args[0].split(':', 1)
    dest = args[1] if len(args) == 2 else '-'

    if options.debug and options.quiet:
        sys.stderr.write("The --debug and --quiet options are "
                         "mutually exclusive.\n")
        parser.print_help()
        sys.exit(1)

    class Progress:
        def __init__(self, out):
            self.progress = 0
            self.out = out

        def progresshook(self, pkt):
            from tftpfetch.packet.types import Data

            if isinstance(pkt, Data):
                self.progress += len(pkt.data)
                self.out(f"Transferred {self.progress} bytes")

    if options.debug:
        log.setLevel(logging.DEBUG)
        # increase the verbosity of the formatter
        debug_formatter = logging.Formatter('[%(asctime)s%(msecs)03d] %(levelname)s [%(name)s:%(lineno)s] %(message)s')
        handler.setFormatter(debug_formatter)
    elif options.quiet:
        log.setLevel(logging.WARNING)

    progresshook = Progress(log.debug).progresshook

    tclient = tftpfetch.TftpClient(host,
                                   options.port,
                                   options.localip)
    try:
        tclient.download(src,
                         dest,
                         progresshook,
                         timeout=options.timeout,
                         retries=options.retries,
                         strict_sequence=options.strict)
    except tftpfetch.TftpException as err:
        sys.stderr.write("%s\n" % str(err))
        sys.exit(1)
    except KeyboardInterrupt:
        pass

if __name__ == '__main__':
    main()

# (c) Copyright 2021 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# transport.py
#
# Request/response channels to a hardware signer (or something pretending to be one).
# Physical transports (USB, BLE, ...) live with the caller: subclass DeviceProxyABC.
#
import os, socket, cbor2
from pprint import pformat
from .constants import EMULATOR_PIPE
from .exceptions import DeviceError, DeviceUnavailable, DeviceTimeout

# Change this to see traffic details
VERBOSE = False

def recv_cbor(sock, chunk=4096):
    # read from a stream socket until one whole CBOR item has arrived
    # returns b'' if the other side closed before sending anything
    buf = b''
    while 1:
        got = sock.recv(chunk)
        if not got:
            if buf:
                raise DeviceError('connection closed mid-message')
            return b''
        buf += got
        try:
            cbor2.loads(buf)
        except cbor2.CBORDecodeEOF:
            continue
        except (cbor2.CBORDecodeError, ValueError):
            # not ours to judge; let the reader report it
            pass
        return buf

class DeviceProxyABC:
    #
    # Abstract base class. Low level details about talking our protocol.
    #
    name = 'device'

    def _send_recv(self, msg):
        # take CBOR encoded request, and round-trip the request + response
        raise NotImplementedError

    def close(self):
        # release resources
        pass

    def send(self, cmd, **args):
        # Serialize command, send it, get response and decode

        args = dict(args)
        args['cmd'] = cmd
        msg = cbor2.dumps(args)

        if VERBOSE:
            print(f">> {cmd} (%s)" % ', '.join(k+'='+(str(v) if len(str(v)) < 9 else '...')
                                            for k,v in args.items() if k != 'cmd'))

        # Send and wait for reply
        resp = self._send_recv(msg)

        try:
            resp = cbor2.loads(resp) if resp else {}
        except (cbor2.CBORDecodeError, ValueError):
            raise DeviceError('Bad CBOR from device')

        if not isinstance(resp, dict):
            raise DeviceError('Bad response from device: not a map')

        if VERBOSE:
            print("<< ", end='')
            if 'error' not in resp:
                print(', '.join(resp.keys()))
            else:
                print(pformat(resp))

        return resp

class UnixSocketProxy(DeviceProxyABC):
    #
    # Device (or the emulator) reached over a Unix socket.
    #

    @classmethod
    def find_emulator(cls, pipename=EMULATOR_PIPE):
        if os.path.exists(pipename):
            return cls(pipename)
        return None

    def __init__(self, pipename, timeout=None):
        self.name = f'unix:{pipename}'
        self.sock = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)
        try:
            self.sock.connect(pipename)
        except OSError as exc:
            self.sock.close()
            raise DeviceUnavailable(f"cannot connect to {pipename}: {exc}")
        self.sock.settimeout(timeout)

    def close(self):
        self.sock.close()

    def _send_recv(self, msg):
        # send and receive response back
        try:
            self.sock.sendall(msg)
            resp = recv_cbor(self.sock)
        except socket.timeout:
            raise DeviceTimeout("no response from device")
        except OSError as exc:
            raise DeviceUnavailable(f"device connection failed: {exc}")

        if not resp:
            # closed socket causes this
            raise DeviceUnavailable("device went away")

        return resp

# EOF

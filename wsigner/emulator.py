#!/usr/bin/env python3
#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Emulate a hardware signer. Keys come from a mnemonic, held in the clear: testing only!
#
# Can be used in-process (EmulatedDevice) or over a Unix socket (see main() below).
#
import traceback, click, cbor2
from pprint import pformat

from mnemonic import Mnemonic

from .bip32 import PrvKeyNode
from .blinding import master_blinding_key_from_seed
from .compat import CT_sign
from .constants import *
from .exceptions import DeviceError
from .transport import DeviceProxyABC, recv_cbor
from .utils import check_path, path2str, B2A
from . import antiexfil

# everyone's favourite test mnemonic
DEFAULT_MNEMONIC = ' '.join(['abandon'] * 11 + ['about'])

# placeholder, but required param
REQUIRED = object()

# provides msg+code number
class EmuErrorCode(RuntimeError):
    def __init__(self, msg, code):
        self.code = code
        super().__init__(msg)

class Emulator:
    '''
        Whole-device state. Knobs (decline, busy, ...) let tests act like a user.
    '''
    def __init__(self, mnemonic=DEFAULT_MNEMONIC, testnet=False, debug=False):
        seed = Mnemonic.to_seed(mnemonic, passphrase='')
        self.testnet = testnet
        self.master = PrvKeyNode.master_key(seed, testnet=testnet)
        self.blinding_key = master_blinding_key_from_seed(seed)
        self.debug = debug

        # behaviour knobs
        self.decline = False            # user says no to every signature
        self.busy = False               # device locked/unplugged
        self.allow_blinding_export = True
        self.evil_nonce = False         # ignore host entropy during AE

        # AE round one, waiting for round two: (path, digest, host_commitment)
        self._ae_pending = None

        # commands as received, for tests to inspect
        self.history = []

    def __repr__(self):
        fp = B2A(self.master.fingerprint())
        return f'<Emulator [{fp}]{" testnet" if self.testnet else ""}>'

    def descriptor(self, ae_protocol='optional', liquid='lite', host_unblinding=True):
        # what a caller would pass to make_hardware() for us
        return dict(name='Emulator', supports_low_r=True, supports_arbitrary_scripts=True,
                    supports_liquid=liquid, supports_host_unblinding=host_unblinding,
                    supports_ae_protocol=ae_protocol)

    def _node(self, path):
        try:
            path = check_path(path)
        except ValueError as exc:
            raise EmuErrorCode(str(exc), ERR_BAD_REQUEST)
        return self.master.derive_path(path)

    def _user_approves(self, what):
        if self.busy:
            raise EmuErrorCode('device busy', ERR_UNAVAILABLE)
        if self.decline:
            raise EmuErrorCode(f'user declined {what}', ERR_REJECTED)

    def cmd_xpub(self, path=REQUIRED, **unused):
        assert path != REQUIRED, 'need path'
        if self.busy: raise EmuErrorCode('device busy', ERR_UNAVAILABLE)

        return dict(xpub=self._node(path).to_public().serialize_public())

    def cmd_sign(self, path=REQUIRED, digest=REQUIRED, **unused):
        assert path != REQUIRED, 'need path'
        assert digest != REQUIRED and len(digest) == DIGEST_SIZE, 'bad digest'
        self._user_approves('signing')

        return dict(sig=CT_sign(self._node(path).key, digest))

    def cmd_ae_commit(self, path=REQUIRED, digest=REQUIRED, host_commitment=REQUIRED, **unused):
        # first round: remember what we've been asked, commit to the nonce
        assert path != REQUIRED, 'need path'
        assert digest != REQUIRED and len(digest) == DIGEST_SIZE, 'bad digest'
        assert host_commitment != REQUIRED and len(host_commitment) == 32, 'bad commitment'
        self._user_approves('signing')

        privkey = self._node(path).key
        self._ae_pending = (list(path), bytes(digest), bytes(host_commitment))

        return dict(signer_commitment=antiexfil.signer_commit(privkey, digest, host_commitment))

    def cmd_ae_sign(self, path=REQUIRED, digest=REQUIRED, host_entropy=REQUIRED, **unused):
        # second round: host entropy must match the commitment from round one
        assert host_entropy != REQUIRED and len(host_entropy) == HOST_ENTROPY_SIZE, \
                    'bad host entropy'
        if self._ae_pending is None:
            raise EmuErrorCode('no AE commitment pending', ERR_BAD_STATE)

        exp_path, exp_digest, commitment = self._ae_pending
        self._ae_pending = None

        if list(path) != exp_path or bytes(digest) != exp_digest:
            raise EmuErrorCode('request differs from commitment', ERR_BAD_STATE)
        if antiexfil.host_commit(bytes(host_entropy)) != commitment:
            raise EmuErrorCode('host entropy does not match commitment', ERR_BAD_STATE)

        privkey = self._node(path).key
        if self.evil_nonce:
            # what a bad device would do: ignore the host
            return dict(sig=CT_sign(privkey, digest))

        return dict(sig=antiexfil.sign(privkey, digest, bytes(host_entropy)))

    def cmd_blinding_key(self, **unused):
        if not self.allow_blinding_export:
            raise EmuErrorCode('blinding key export disabled', ERR_NOT_SUPPORTED)
        self._user_approves('blinding key export')

        return dict(master_blinding_key=self.blinding_key)

    def handle(self, msg):
        # take CBOR request, return CBOR response; errors become {error, code}
        cmd = None
        try:
            try:
                msg = cbor2.loads(msg)
            except Exception as exc:
                raise EmuErrorCode(f'bad cbor: {exc}', ERR_BAD_REQUEST)

            if not isinstance(msg, dict):
                raise EmuErrorCode('bad cbor top-level obj', ERR_BAD_REQUEST)

            cmd = msg.pop('cmd', None)
            if not cmd: raise EmuErrorCode('no cmd in msg', ERR_UNKNOWN_CMD)

            self.history.append(cmd)

            method = getattr(self, 'cmd_'+cmd, None)
            if not method: raise EmuErrorCode('unknown cmd', ERR_UNKNOWN_CMD)

            resp = method(**msg)
        except EmuErrorCode as exc:
            resp = dict(error=str(exc), code=exc.code)
        except AssertionError as exc:
            resp = dict(error=str(exc), code=ERR_BAD_REQUEST)
        except Exception as exc:
            # shouldn't happen
            print(f"FAILED: Command '{cmd}' => {exc}")
            traceback.print_exc()
            resp = dict(error="internal fail", code=500)

        if self.debug:
            xargs = ''
            if isinstance(msg, dict) and 'path' in msg:
                xargs = f'({path2str(msg["path"])})'
            print(f"Command '{cmd}{xargs}' => ", end='')
            if 'error' not in resp:
                print(', '.join(resp.keys()))
            else:
                print(pformat(resp))

        return cbor2.dumps(resp)

    def serve(self, pipename):
        # Using a unix socket as connector, run as an emulator for the device.
        import atexit, os, socket

        # manage unix socket cleanup for client
        def sock_cleanup():
            if os.path.exists(pipename):
                os.unlink(pipename)
        sock_cleanup()
        atexit.register(sock_cleanup)

        pipe = socket.socket(socket.AF_UNIX, socket.SOCK_STREAM)

        pipe.bind(pipename)
        pipe.listen()
        while 1:
            if self.debug: print(f"Waiting for new connection on: {pipename}")
            con, addr = pipe.accept()

            if self.debug: print("Connected.")

            while 1:
                try:
                    msg = recv_cbor(con)
                except (DeviceError, OSError):
                    break
                if not msg: break

                con.sendall(self.handle(msg))

            con.close()


class EmulatedDevice(DeviceProxyABC):
    #
    # In-process connection to an Emulator: same bytes, no socket.
    #
    name = 'emulator'

    def __init__(self, emulator=None):
        self.emu = emulator or Emulator()

    def _send_recv(self, msg):
        return self.emu.handle(msg)


@click.command()
@click.option('--quiet', '-q', is_flag=True, help='Less debugging')
@click.option('--testnet', '-t', is_flag=True, help='Operate on testnet rather than mainnet')
@click.option('--pipe', '-p', type=str, default=EMULATOR_PIPE, help='Unix pipe for comms', metavar="PATH")
@click.option('--mnemonic', '-m', type=str, default=DEFAULT_MNEMONIC, help='BIP-39 words to use')
@click.option('--decline', is_flag=True, help='Refuse all signing requests')
def main(quiet, testnet, pipe, mnemonic, decline):
    '''
        Emulate a hardware signer on a Unix socket.
    '''
    emu = Emulator(mnemonic, testnet=testnet, debug=not quiet)
    emu.decline = decline

    print(emu)
    print("Descriptor: " + pformat(emu.descriptor()))

    emu.serve(pipe)

if __name__ == '__main__':
    main()

# EOF

#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# device.py
#
# Higher-level protocol for hardware signers, on top of any DeviceProxyABC.
#
# - the device can only do one thing at a time: all requests hold the lock
# - no retries here; most failures need the user to do something first
#
import threading
from contextlib import contextmanager

from .bip32 import PubKeyNode
from .constants import *
from .exceptions import DeviceError, DeviceUnavailable, DeviceTimeout, SigningRejected
from .exceptions import NotSupported, VerificationError, InvalidInput
from .compat import CT_sig_verify
from . import antiexfil

ERROR_CLASSES = {
    ERR_REJECTED: SigningRejected,
    ERR_TIMEOUT: DeviceTimeout,
    ERR_UNAVAILABLE: DeviceUnavailable,
}

class HardwareDevice:
    #
    # Wrapper for a device proxy. Signer calls methods on this to get work done.
    #
    def __init__(self, transport, testnet=False, timeout=DEFAULT_DEVICE_TIMEOUT):
        self.tr = transport
        self.testnet = testnet
        self.timeout = timeout
        self._lock = threading.Lock()
        self._xpubs = {}

    def __repr__(self):
        return '<%s via %s>' % (self.__class__.__name__, getattr(self.tr, 'name', '???'))

    def close(self):
        with self.session():
            self.tr.close()

    @contextmanager
    def session(self):
        # exclusive use of the device; waits up to self.timeout for other callers
        if not self._lock.acquire(timeout=-1 if self.timeout is None else self.timeout):
            raise DeviceUnavailable("device busy", ERR_UNAVAILABLE)
        try:
            yield self
        finally:
            self._lock.release()

    def send(self, cmd, **args):
        # Send a command, get response, raise on errors
        # - caller must be inside session()
        assert self._lock.locked()
        resp = self.tr.send(cmd, **args)

        if 'error' in resp:
            msg = resp.pop('error')
            code = resp.pop('code', 500)
            text = f'{code} on {cmd}: {msg}'
            if code == ERR_NOT_SUPPORTED:
                raise NotSupported(text, code)
            raise ERROR_CLASSES.get(code, DeviceError)(text, code, msg)

        return resp

    def _request(self, cmd, field, **args):
        # one round trip, return one field from response
        with self.session():
            resp = self.send(cmd, **args)
        if field not in resp:
            raise DeviceError(f"missing '{field}' in response to {cmd}")
        return resp[field]

    def get_xpub(self, path):
        # BIP-32 public node at m/path, remembered since it may need the user
        path = tuple(path)
        if path in self._xpubs:
            return self._xpubs[path]

        raw = self._request('xpub', 'xpub', path=list(path))
        try:
            node = PubKeyNode.parse(bytes(raw), testnet=self.testnet)
        except (InvalidInput, ValueError) as exc:
            raise DeviceError(f"device gave bad xpub: {exc}")

        if node.parsed_version != node.pub_version:
            raise DeviceError("device xpub is for the wrong network")
        if node.depth != len(path):
            raise DeviceError("device xpub has wrong depth")

        self._xpubs[path] = node
        return node

    def sign(self, path, digest):
        # vanilla ECDSA done on the device
        pubkey = self.get_xpub(path).sec()

        sig = bytes(self._request('sign', 'sig', path=list(path), digest=digest))

        if len(sig) != 64 or not CT_sig_verify(pubkey, digest, sig):
            raise VerificationError("device signature does not verify")

        return sig

    def sign_ae(self, path, digest):
        # Anti-Exfil signing: two rounds, cannot be interleaved with anything else
        pubkey = self.get_xpub(path).sec()
        host_entropy = antiexfil.pick_host_entropy()

        with self.session():
            resp = self.send('ae_commit', path=list(path), digest=digest,
                                host_commitment=antiexfil.host_commit(host_entropy))
            signer_commitment = resp.get('signer_commitment')
            if not signer_commitment or len(signer_commitment) != 33:
                raise DeviceError("bad signer commitment from device")

            resp = self.send('ae_sign', path=list(path), digest=digest, host_entropy=host_entropy)

        sig = bytes(resp.get('sig', b''))
        if len(sig) != 64 or not antiexfil.host_verify(sig, digest, pubkey,
                                                        host_entropy, bytes(signer_commitment)):
            raise VerificationError("device signature fails Anti-Exfil check")

        return sig

    def get_master_blinding_key(self):
        key = bytes(self._request('blinding_key', 'master_blinding_key'))
        if len(key) != BLINDING_KEY_SIZE:
            raise DeviceError("device gave bad master blinding key")
        return key

# EOF

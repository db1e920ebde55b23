#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Key material, one class per kind of signer. The signer owns exactly one of these.
#
# - secrets live in SecretBytes (a bytearray) and are zeroed by wipe()
# - python will make transient copies (bytes) during the math; those are not
#   kept by us, but we cannot zero them
#
import copy
import hmac
import threading
from typing import Optional

from .bip32 import PrvKeyNode
from .constants import BLINDING_KEY_SIZE, HARDENED
from .exceptions import Unavailable, Conflict, NotSupported, DerivationError, InvalidInput
from .utils import decrypt_mnemonic


class SecretBytes:
    """Bytes we must not leak. Use reveal() for a short-lived copy."""

    __slots__ = ('_buf', '_wiped')

    def __init__(self, data):
        self._buf = bytearray(data)
        self._wiped = False

    def __len__(self):
        return len(self._buf)

    def __repr__(self):
        return '<SecretBytes: %d bytes%s>' % (len(self._buf), ' (wiped)' if self._wiped else '')

    def __eq__(self, other):
        if isinstance(other, SecretBytes):
            other = other._buf
        return hmac.compare_digest(bytes(self._buf), bytes(other))

    __hash__ = None

    def __copy__(self):
        raise TypeError("secrets cannot be copied")

    __deepcopy__ = lambda self, memo: self.__copy__()

    def __reduce__(self):
        raise TypeError("secrets cannot be pickled")

    @property
    def wiped(self):
        return self._wiped

    def reveal(self):
        if self._wiped:
            raise Unavailable("secret has been erased")
        return bytes(self._buf)

    def wipe(self):
        for i in range(len(self._buf)):
            self._buf[i] = 0
        self._wiped = True


class WatchOnlyKeys:
    """Nothing to hold."""

    def wipe(self):
        pass


class HardwareKeys:
    """Device descriptor (kept verbatim) and the device we talk to, if any."""

    def __init__(self, descriptor, device=None):
        self.descriptor = copy.deepcopy(dict(descriptor))
        self.device = device

    def wipe(self):
        pass


class SoftwareKeys:
    """
    Master extended key held in memory, and optionally the mnemonic it came
    from (encrypted, never in the clear).
    """

    def __init__(self, master, mnemonic_blob: Optional[bytes] = None):
        self.testnet = master.testnet
        self.chain_code = master.chain_code
        self.depth = master.depth
        self.index = master.index
        self.parent_fingerprint = master.parent_fingerprint
        self.mnemonic_blob = mnemonic_blob

        if isinstance(master, PrvKeyNode):
            self._secret = SecretBytes(master.key)
            self._public = master.to_public()
        else:
            self._secret = None
            self._public = master

    @property
    def can_sign(self):
        return self._secret is not None

    def _private_master(self):
        return PrvKeyNode(key=self._secret.reveal(), chain_code=self.chain_code,
                          index=self.index, depth=self.depth, testnet=self.testnet,
                          parent_fingerprint=self.parent_fingerprint)

    def derive_public(self, path):
        if self._secret is not None:
            return self._private_master().derive_path(path).to_public()

        if any(i & HARDENED for i in path):
            raise DerivationError("hardened derivation needs the private key")
        return self._public.derive_path(path)

    def derive_private(self, path):
        # 32-byte private key at m/path
        if self._secret is None:
            raise NotSupported("public key only: cannot sign")
        return self._private_master().derive_path(path).key

    def get_mnemonic(self, password):
        if self.mnemonic_blob is None:
            return ''
        return decrypt_mnemonic(self.mnemonic_blob, password)

    def wipe(self):
        if self._secret is not None:
            self._secret.wipe()


class BlindingKeySlot:
    """
    Master blinding key: absent until derived or set, then fixed.
    """

    def __init__(self, key=None):
        self._lock = threading.Lock()
        self._key = None
        if key is not None:
            self.set(key)

    def has(self):
        return self._key is not None and not self._key.wiped

    def get(self):
        if self._key is None:
            raise Unavailable("no master blinding key")
        return self._key.reveal()

    def set(self, key):
        # single writer; same value again is fine, a different one is not
        if len(key) != BLINDING_KEY_SIZE:
            raise InvalidInput(f"master blinding key must be {BLINDING_KEY_SIZE} bytes")

        with self._lock:
            if self._key is not None:
                if self._key.wiped:
                    raise Unavailable("signer has been closed")
                if self._key == key:
                    return
                raise Conflict("a different master blinding key is already set")

            self._key = SecretBytes(key)

    def wipe(self):
        with self._lock:
            if self._key is not None:
                self._key.wipe()

# EOF

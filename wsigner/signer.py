#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# signer.py
#
# One interface for deriving keys and signing, whatever holds the keys:
#
# - WATCH_ONLY: nothing, can't sign
# - HARDWARE:   an external device does the work (via a proxy from the caller)
# - SOFTWARE:   master key in memory (from a mnemonic, or from an xpub/xprv)
#
import copy
from enum import Enum
from collections.abc import Mapping

from mnemonic import Mnemonic

from .bip32 import PrvKeyNode, parse_extended_key
from .blinding import master_blinding_key_from_seed, blinding_key_from_script
from .blinding import blinding_pubkey_from_script
from .capabilities import Capabilities, LiquidSupportLevel, AEProtocolSupportLevel, device_fields
from .compat import CT_sign, CT_priv_to_pubkey
from .constants import *
from .device import HardwareDevice
from .exceptions import InvalidInput, NotSupported, Unavailable, VerificationError, DeviceUnavailable
from .keystore import WatchOnlyKeys, HardwareKeys, SoftwareKeys, BlindingKeySlot
from .network import NetworkParams
from .utils import check_path, decode_hex, encrypt_mnemonic, blob_key_from_pubkey
from . import antiexfil


class SignerKind(Enum):
    WATCH_ONLY = 'watch-only'
    HARDWARE = 'hardware'
    SOFTWARE = 'software'


class Signer:
    #
    # Use make_watch_only(), make_hardware() or make_software() to get one of these.
    #
    # Instances own their key material: they cannot be copied or pickled. Pass
    # the object itself around, and close() it (or use "with") when done.
    #
    def __init__(self, network: NetworkParams, kind: SignerKind, keys, capabilities: Capabilities,
                        master_blinding_key=None):
        if not isinstance(network, NetworkParams):
            raise InvalidInput("network must be NetworkParams")

        self.network = NetworkParams(**network.as_dict())
        self.kind = kind
        self.keys = keys
        self.capabilities = capabilities
        self._blinding = BlindingKeySlot()
        self._closed = False

        if master_blinding_key is not None:
            if not network.liquid:
                raise InvalidInput("master blinding key only for Liquid")
            self._blinding.set(master_blinding_key)

    def __repr__(self):
        if self.kind is SignerKind.HARDWARE:
            name = device_fields(self.keys.descriptor).get('name', 'unnamed')
            extra = f' {name}'
        elif self.kind is SignerKind.SOFTWARE and not self.keys.can_sign:
            extra = ' (xpub only)'
        else:
            extra = ''
        closed = ' CLOSED' if self._closed else ''
        return f'<Signer {self.kind.value}{extra} on {self.network.name}{closed}>'

    def __copy__(self):
        raise TypeError("signers own their keys and cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("signers own their keys and cannot be copied")

    def __reduce_ex__(self, protocol):
        raise TypeError("signers cannot be pickled")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def __del__(self):
        if not getattr(self, '_closed', True):
            self.close()

    def close(self):
        # erase all secrets; device proxy belongs to caller and stays open
        self.keys.wipe()
        self._blinding.wipe()
        self._closed = True

    def _check_open(self):
        if self._closed:
            raise Unavailable("signer has been closed")

    def _device(self) -> HardwareDevice:
        dev = self.keys.device
        if dev is None:
            raise DeviceUnavailable("no device connected", ERR_UNAVAILABLE)
        return dev

    #
    # Capabilities: fixed for life of object
    #
    def supports_low_r(self):
        return self.capabilities.low_r

    def supports_arbitrary_scripts(self):
        return self.capabilities.arbitrary_scripts

    def get_liquid_support(self) -> LiquidSupportLevel:
        return self.capabilities.liquid

    def supports_host_unblinding(self):
        return self.capabilities.host_unblinding

    def get_ae_protocol_support(self) -> AEProtocolSupportLevel:
        return self.capabilities.ae_protocol

    def is_liquid(self):
        return self.network.liquid

    def is_watch_only(self):
        # true also for software signers built from an xpub
        if self.kind is SignerKind.SOFTWARE:
            return not self.keys.can_sign
        return self.kind is SignerKind.WATCH_ONLY

    def is_hardware(self):
        return self.kind is SignerKind.HARDWARE

    def get_device(self):
        if self.kind is SignerKind.HARDWARE:
            return copy.deepcopy(self.keys.descriptor)
        return {}

    #
    # Secrets, derivation and signing
    #
    def get_mnemonic(self, password=''):
        # empty string if we don't have one
        if self.kind is not SignerKind.SOFTWARE:
            return ''
        self._check_open()
        return self.keys.get_mnemonic(password)

    def get_xpub(self, path):
        # BIP-32 public node for m/path, as a PubKeyNode
        path = check_path(path)

        if self.kind is SignerKind.SOFTWARE:
            self._check_open()
            return self.keys.derive_public(path)
        elif self.kind is SignerKind.HARDWARE:
            return self._device().get_xpub(path)
        else:
            raise NotSupported("watch-only signer has no keys to derive from")

    def get_bip32_xpub(self, path):
        return self.get_xpub(path).extended_public_key()

    def sign_hash(self, path, digest, use_ae=None):
        # ECDSA signature (64 bytes, compact) over digest, by key at m/path
        # - use_ae picks Anti-Exfil protocol when it is optional; mandatory means always
        path = check_path(path)
        if not isinstance(digest, (bytes, bytearray)) or len(digest) != DIGEST_SIZE:
            raise InvalidInput(f"digest must be {DIGEST_SIZE} bytes")
        digest = bytes(digest)

        if self.is_watch_only():
            raise NotSupported("watch-only signer cannot sign")

        level = self.capabilities.ae_protocol
        if use_ae and level == AEProtocolSupportLevel.NONE:
            raise NotSupported("signer does not support the Anti-Exfil protocol")
        want_ae = (level == AEProtocolSupportLevel.MANDATORY) \
                    or (level == AEProtocolSupportLevel.OPTIONAL and bool(use_ae))

        if self.kind is SignerKind.SOFTWARE:
            self._check_open()
            privkey = self.keys.derive_private(path)
            if want_ae:
                return self._sign_ae_local(privkey, digest)
            return CT_sign(privkey, digest, low_r=True)
        else:
            dev = self._device()
            if want_ae:
                return dev.sign_ae(path, digest)
            return dev.sign(path, digest)

    def _sign_ae_local(self, privkey, digest):
        # both halves of the protocol, so host gets the same guarantees
        host_entropy = antiexfil.pick_host_entropy()
        commitment = antiexfil.signer_commit(privkey, digest, antiexfil.host_commit(host_entropy))
        sig = antiexfil.sign(privkey, digest, host_entropy)

        pubkey = CT_priv_to_pubkey(privkey)
        if not antiexfil.host_verify(sig, digest, pubkey, host_entropy, commitment):
            raise VerificationError("Anti-Exfil self-check failed")
        return sig

    #
    # Login and client secrets
    #
    def get_login_xpub(self):
        return self.get_xpub(LOGIN_PATH)

    def sign_login_challenge(self, digest):
        return self.sign_hash(LOGIN_PATH, digest)

    def get_client_blob_key(self):
        # key to encrypt persisted wallet data, any signer holding our keys gets the same
        return blob_key_from_pubkey(self.get_xpub(CLIENT_SECRET_PATH).sec())

    #
    # Liquid blinding keys
    #
    def _check_liquid(self):
        if not self.network.liquid:
            raise NotSupported("blinding keys only exist on Liquid networks")

    def get_blinding_key_from_script(self, script):
        self._check_liquid()
        self._check_open()
        if not self._blinding.has():
            raise NotSupported("no master blinding key available")
        return blinding_key_from_script(self._blinding.get(), script)

    def get_blinding_pubkey_from_script(self, script):
        self._check_liquid()
        self._check_open()
        if not self._blinding.has():
            raise NotSupported("no master blinding key available")
        return blinding_pubkey_from_script(self._blinding.get(), script)

    def has_master_blinding_key(self):
        return self._blinding.has()

    def get_master_blinding_key(self):
        self._check_open()
        return self._blinding.get()

    def set_master_blinding_key(self, blinding_key_hex):
        # hex of the 32-byte key, or the full 64-byte SLIP-77 node (key is right half)
        self._check_liquid()
        self._check_open()
        key = decode_hex(blinding_key_hex, expect_len=(32, 64), what='master blinding key')
        if len(key) == 64:
            key = key[32:]
        self._blinding.set(key)

    def request_master_blinding_key(self):
        # ask a device that allows host unblinding for its key
        self._check_liquid()
        if self.kind is not SignerKind.HARDWARE or not self.capabilities.host_unblinding:
            raise NotSupported("signer cannot export a master blinding key")
        self._check_open()
        self._blinding.set(self._device().get_master_blinding_key())


#
# Factory
#

def _check_network(network):
    if not isinstance(network, NetworkParams):
        raise InvalidInput("network must be NetworkParams")

def make_watch_only(network):
    "Signer with no keys, for watch-only sessions."
    _check_network(network)
    return Signer(network, SignerKind.WATCH_ONLY, WatchOnlyKeys(),
                    Capabilities.for_watch_only(network))

def make_hardware(network, descriptor, proxy=None, timeout=DEFAULT_DEVICE_TIMEOUT):
    "Proxy for a hardware signer controlled by the caller."
    _check_network(network)
    if not isinstance(descriptor, Mapping):
        raise InvalidInput("device descriptor must be a mapping")

    caps = Capabilities.from_descriptor(dict(descriptor))
    if network.liquid and caps.liquid == LiquidSupportLevel.NONE:
        raise NotSupported("hardware device does not support Liquid")

    device = None
    if proxy is not None:
        device = HardwareDevice(proxy, testnet=network.is_testnet, timeout=timeout)

    return Signer(network, SignerKind.HARDWARE, HardwareKeys(descriptor, device), caps)

def _is_extended_key(text):
    return len(text.split()) == 1 and text[0:4] in ('xpub', 'xprv', 'tpub', 'tprv')

def make_software(network, mnemonic_or_xpub, password=''):
    "Signer using a private key held in memory, or derive-only from an xpub."
    _check_network(network)
    if not isinstance(mnemonic_or_xpub, str):
        raise InvalidInput("expected mnemonic or extended key text")
    text = mnemonic_or_xpub.strip()

    if _is_extended_key(text):
        node = parse_extended_key(text, testnet=network.is_testnet)
        keys = SoftwareKeys(node)
        caps = Capabilities.for_software(network) if keys.can_sign \
                    else Capabilities.for_watch_only(network)
        return Signer(network, SignerKind.SOFTWARE, keys, caps)

    phrase = ' '.join(text.lower().split())
    mnemo = Mnemonic('english')
    if not phrase or not mnemo.check(phrase):
        raise InvalidInput("invalid mnemonic: bad word or checksum")

    seed = Mnemonic.to_seed(phrase, passphrase='')
    master = PrvKeyNode.master_key(seed, testnet=network.is_testnet)
    blinding_key = master_blinding_key_from_seed(seed) if network.liquid else None

    keys = SoftwareKeys(master, mnemonic_blob=encrypt_mnemonic(phrase, password))

    return Signer(network, SignerKind.SOFTWARE, keys, Capabilities.for_software(network),
                    master_blinding_key=blinding_key)

# EOF

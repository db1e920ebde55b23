#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# BIP-32 key nodes. Private nodes hold the 32-byte secret, public nodes the
# 33-byte compressed pubkey; both serialize to the 78-byte extended form.
#
import hmac
import hashlib
from io import BytesIO
from typing import Union, Sequence

import base58
from coincurve import PublicKey

from wsigner.compat import hash160, CT_priv_to_pubkey, CURVE_ORDER
from wsigner.constants import HARDENED, MAX_BIP32_DEPTH
from wsigner.constants import BIP32_MAINNET_VERSIONS, BIP32_TESTNET_VERSIONS
from wsigner.exceptions import InvalidInput, DerivationError


Prv_or_PubKeyNode = Union["PrvKeyNode", "PubKeyNode"]


def big_endian_to_int(b: bytes) -> int:
    return int.from_bytes(b, "big")

def int_to_big_endian(n: int, length: int) -> bytes:
    return n.to_bytes(length, "big")


class InvalidKeyError(DerivationError):
    """Raised when derived key is invalid"""


class PubKeyNode(object):

    mark: str = "M"
    testnet_version: int = BIP32_TESTNET_VERSIONS[0]
    mainnet_version: int = BIP32_MAINNET_VERSIONS[0]

    __slots__ = (
        "parent",
        "key",
        "chain_code",
        "depth",
        "index",
        "parsed_parent_fingerprint",
        "parsed_version",
        "testnet",
    )

    def __init__(self, key: bytes, chain_code: bytes, index: int = 0,
                 depth: int = 0, testnet: bool = False,
                 parent: Prv_or_PubKeyNode = None,
                 parent_fingerprint: bytes = None):
        self.parent = parent
        self.key = key
        self.chain_code = chain_code
        self.depth = depth
        self.index = index
        self.parsed_parent_fingerprint = parent_fingerprint
        self.parsed_version = None
        self.testnet = testnet

    def __eq__(self, other) -> bool:
        if type(self) != type(other):
            return False
        return bytes(self.key) == bytes(other.key) and \
            self.chain_code == other.chain_code and \
            self.depth == other.depth and \
            self.index == other.index and \
            self.testnet == other.testnet and \
            self.parent_fingerprint == other.parent_fingerprint

    @property
    def parent_fingerprint(self) -> bytes:
        """
        Derived nodes compute it from their parent; parsed nodes only
        know what the extended key said.
        """
        if self.parent:
            fingerprint = self.parent.fingerprint()
        else:
            fingerprint = self.parsed_parent_fingerprint
        # in case there is still None here - it is master
        return fingerprint or b"\x00\x00\x00\x00"

    @property
    def pub_version(self) -> int:
        if self.testnet:
            return PubKeyNode.testnet_version
        return PubKeyNode.mainnet_version

    def __repr__(self) -> str:
        if self.is_root():
            return self.mark
        if self.is_hardened():
            index = str(self.index - HARDENED) + "'"
        else:
            index = str(self.index)
        parent = str(self.parent) if self.parent else self.mark
        return parent + "/" + index

    def is_hardened(self) -> bool:
        return self.index >= HARDENED

    def is_master(self) -> bool:
        return self.depth == 0 and self.index == 0 and self.parent is None

    def is_root(self) -> bool:
        """Check whether current key node is root (has no parent)."""
        return self.parent is None

    @property
    def public_key(self) -> bytes:
        assert len(self.key) == 33
        return self.key

    def sec(self) -> bytes:
        return self.public_key

    def fingerprint(self) -> bytes:
        # first four bytes of RIPEMD160(SHA256(pubkey))
        return hash160(self.sec())[:4]

    @classmethod
    def parse(cls, s: Union[str, bytes, BytesIO],
              testnet: bool = False) -> Prv_or_PubKeyNode:
        """
        Node from base58 extended key text, or the 78 raw bytes (or a
        buffer holding them). Version bytes are not checked here; see
        parse_extended_key() for that.
        """
        if isinstance(s, str):
            try:
                s = BytesIO(base58.b58decode_check(s))
            except ValueError as exc:
                raise InvalidInput(f"bad extended key encoding: {exc}")
        elif isinstance(s, (bytes, bytearray)):
            s = BytesIO(s)
        elif isinstance(s, BytesIO):
            pass
        else:
            raise ValueError("has to be bytes, str or BytesIO")
        return cls._parse(s, testnet=testnet)

    @classmethod
    def _parse(cls, s: BytesIO, testnet: bool = False) -> Prv_or_PubKeyNode:
        raw = s.read()
        if len(raw) != 78:
            raise InvalidInput(f"extended key must be 78 bytes, got {len(raw)}")
        node = cls(
            key=cls._parse_key(raw[45:78]),
            chain_code=raw[13:45],
            index=big_endian_to_int(raw[9:13]),
            depth=raw[4],
            testnet=testnet,
            parent_fingerprint=raw[5:9],
        )
        node.parsed_version = big_endian_to_int(raw[0:4])
        return node

    @classmethod
    def _parse_key(cls, key_bytes: bytes) -> bytes:
        try:
            PublicKey(key_bytes)
        except ValueError:
            raise InvalidInput("extended key holds an invalid public key")
        return key_bytes

    def _serialize(self, key: bytes, version: int = None) -> bytes:
        # version(4) depth(1) parent fingerprint(4) child number(4) chain code(32) key(33)
        result = int_to_big_endian(version, 4)
        result += int_to_big_endian(self.depth, 1)
        if self.is_master():
            result += bytes(4)
        else:
            result += self.parent_fingerprint
        result += int_to_big_endian(self.index, 4)
        result += self.chain_code
        result += key
        return result

    def serialize_public(self, version: int = None) -> bytes:
        return self._serialize(
            version=self.pub_version if version is None else version,
            key=self.sec()
        )

    def extended_public_key(self, version: int = None) -> str:
        return base58.b58encode_check(self.serialize_public(version=version)).decode('ascii')

    def to_public(self) -> "PubKeyNode":
        return self

    def _child(self, key: bytes, chain_code: bytes, index: int) -> Prv_or_PubKeyNode:
        return self.__class__(
            key=key,
            chain_code=chain_code,
            index=index,
            depth=self.depth + 1,
            testnet=self.testnet,
            parent=self
        )

    def _check_depth(self):
        # depth is one byte when serialized
        if self.depth >= MAX_BIP32_DEPTH:
            raise DerivationError(f"cannot derive below depth {MAX_BIP32_DEPTH}")

    def ckd(self, index: int) -> "PubKeyNode":
        """
        CKDpub: child public key from parent public key. Only defined
        for non-hardened children.
        """
        if index >= HARDENED:
            raise DerivationError("failure: hardened child for public ckd")
        self._check_depth()

        I = hmac.new(key=self.chain_code, msg=self.key + int_to_big_endian(index, 4),
                        digestmod=hashlib.sha512).digest()
        IL, IR = I[:32], I[32:]
        if big_endian_to_int(IL) >= CURVE_ORDER:
            raise InvalidKeyError("derived tweak is greater/equal to curve order")
        try:
            Ki = PublicKey(self.key).add(IL).format()
        except ValueError:
            raise InvalidKeyError("public key is a point at infinity")

        return self._child(Ki, IR, index)

    def derive_path(self, index_list: Sequence[int]) -> Prv_or_PubKeyNode:
        node = self
        for i in index_list:
            node = node.ckd(index=i)
        return node


class PrvKeyNode(PubKeyNode):

    mark: str = "m"
    testnet_version: int = BIP32_TESTNET_VERSIONS[1]
    mainnet_version: int = BIP32_MAINNET_VERSIONS[1]

    @property
    def public_key(self) -> bytes:
        return CT_priv_to_pubkey(self.key)

    @property
    def prv_version(self) -> int:
        if self.testnet:
            return PrvKeyNode.testnet_version
        return PrvKeyNode.mainnet_version

    @classmethod
    def _parse_key(cls, key_bytes: bytes) -> bytes:
        if key_bytes[0] != 0:
            raise InvalidInput("extended private key must start with zero byte")
        k = big_endian_to_int(key_bytes[1:])
        if not (0 < k < CURVE_ORDER):
            raise InvalidInput("extended key holds an invalid private key")
        return key_bytes[1:]

    @classmethod
    def master_key(cls, bip39_seed: bytes, testnet=False) -> "PrvKeyNode":
        """
        Master node from a BIP-39 seed: I = HMAC-SHA512("Bitcoin seed", seed),
        left half is the secret, right half the chain code.
        """
        I = hmac.new(key=b"Bitcoin seed", msg=bip39_seed, digestmod=hashlib.sha512).digest()
        IL, IR = I[:32], I[32:]

        k = big_endian_to_int(IL)
        if k == 0 or k >= CURVE_ORDER:
            raise InvalidKeyError("seed gives an invalid master key")

        return cls(key=IL, chain_code=IR, testnet=testnet)

    def serialize_private(self, version: int = None) -> bytes:
        return self._serialize(
            version=self.prv_version if version is None else version,
            key=b"\x00" + bytes(self.key)
        )

    def extended_private_key(self, version: int = None) -> str:
        return base58.b58encode_check(self.serialize_private(version=version)).decode('ascii')

    def to_public(self) -> PubKeyNode:
        # same position in the tree, public key only
        return PubKeyNode(
            key=self.public_key,
            chain_code=self.chain_code,
            index=self.index,
            depth=self.depth,
            testnet=self.testnet,
            parent_fingerprint=self.parent_fingerprint
        )

    def ckd(self, index: int) -> "PrvKeyNode":
        """
        CKDpriv: child private key from parent private key. Hardened
        children hash the secret (0x00 || k), others the pubkey.
        """
        self._check_depth()

        if index >= HARDENED:
            data = b"\x00" + bytes(self.key) + int_to_big_endian(index, 4)
        else:
            data = self.public_key + int_to_big_endian(index, 4)
        I = hmac.new(key=self.chain_code, msg=data, digestmod=hashlib.sha512).digest()
        IL, IR = I[:32], I[32:]
        if big_endian_to_int(IL) >= CURVE_ORDER:
            raise InvalidKeyError("derived tweak is greater/equal to curve order")
        ki = (big_endian_to_int(IL) + big_endian_to_int(self.key)) % CURVE_ORDER
        if ki == 0:
            raise InvalidKeyError("private key is zero")

        return self._child(int_to_big_endian(ki, 32), IR, index)


def parse_extended_key(s: str, testnet: bool = False) -> Prv_or_PubKeyNode:
    """
    Parses xpub/xprv (or tpub/tprv) text, picking the node class from
    the version bytes, which must match the network.
    """
    try:
        raw = base58.b58decode_check(s)
    except ValueError as exc:
        raise InvalidInput(f"bad extended key encoding: {exc}")
    if len(raw) != 78:
        raise InvalidInput(f"extended key must be 78 bytes, got {len(raw)}")

    pub_ver, prv_ver = BIP32_TESTNET_VERSIONS if testnet else BIP32_MAINNET_VERSIONS
    version = big_endian_to_int(raw[0:4])
    if version == pub_ver:
        return PubKeyNode.parse(raw, testnet=testnet)
    if version == prv_ver:
        return PrvKeyNode.parse(raw, testnet=testnet)

    other = BIP32_MAINNET_VERSIONS if testnet else BIP32_TESTNET_VERSIONS
    if version in other:
        raise InvalidInput("extended key is for the wrong network")
    raise InvalidInput("unknown extended key version: 0x%08x" % version)

# EOF

#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
import pytest
from io import BytesIO

import base58

from wsigner.bip32 import PrvKeyNode, PubKeyNode, parse_extended_key
from wsigner.constants import MAX_BIP32_DEPTH
from wsigner.exceptions import InvalidInput, DerivationError
from wsigner.utils import str2path

# BIP-32 test vectors 1..3: (seed, path, xpub, xprv)
V1 = "000102030405060708090a0b0c0d0e0f"
V2 = "fffcf9f6f3f0edeae7e4e1dedbd8d5d2cfccc9c6c3c0bdbab7b4b1aeaba8a5a29f9c999693908d8a8784817e7b7875726f6c696663605d5a5754514e4b484542"
V3 = "4b381541583be4423346c643850da4b320e46a87ae3d2a4e6da11eba819cd4acba45d239319ac14f863b8d5ab5a0d0c64d2e8a1e7d1457df2e5a3c51c73235be"

VECTORS = [
    (V1, "m",
     "xpub661MyMwAqRbcFtXgS5sYJABqqG9YLmC4Q1Rdap9gSE8NqtwybGhePY2gZ29ESFjqJoCu1Rupje8YtGqsefD265TMg7usUDFdp6W1EGMcet8",
     "xprv9s21ZrQH143K3QTDL4LXw2F7HEK3wJUD2nW2nRk4stbPy6cq3jPPqjiChkVvvNKmPGJxWUtg6LnF5kejMRNNU3TGtRBeJgk33yuGBxrMPHi"),
    (V1, "m/0h",
     "xpub68Gmy5EdvgibQVfPdqkBBCHxA5htiqg55crXYuXoQRKfDBFA1WEjWgP6LHhwBZeNK1VTsfTFUHCdrfp1bgwQ9xv5ski8PX9rL2dZXvgGDnw",
     "xprv9uHRZZhk6KAJC1avXpDAp4MDc3sQKNxDiPvvkX8Br5ngLNv1TxvUxt4cV1rGL5hj6KCesnDYUhd7oWgT11eZG7XnxHrnYeSvkzY7d2bhkJ7"),
    (V1, "m/0h/1",
     "xpub6ASuArnXKPbfEwhqN6e3mwBcDTgzisQN1wXN9BJcM47sSikHjJf3UFHKkNAWbWMiGj7Wf5uMash7SyYq527Hqck2AxYysAA7xmALppuCkwQ",
     "xprv9wTYmMFdV23N2TdNG573QoEsfRrWKQgWeibmLntzniatZvR9BmLnvSxqu53Kw1UmYPxLgboyZQaXwTCg8MSY3H2EU4pWcQDnRnrVA1xe8fs"),
    (V1, "m/0h/1/2h/2/1000000000",
     "xpub6H1LXWLaKsWFhvm6RVpEL9P4KfRZSW7abD2ttkWP3SSQvnyA8FSVqNTEcYFgJS2UaFcxupHiYkro49S8yGasTvXEYBVPamhGW6cFJodrTHy",
     "xprvA41z7zogVVwxVSgdKUHDy1SKmdb533PjDz7J6N6mV6uS3ze1ai8FHa8kmHScGpWmj4WggLyQjgPie1rFSruoUihUZREPSL39UNdE3BBDu76"),
    (V2, "m/0",
     "xpub69H7F5d8KSRgmmdJg2KhpAK8SR3DjMwAdkxj3ZuxV27CprR9LgpeyGmXUbC6wb7ERfvrnKZjXoUmmDznezpbZb7ap6r1D3tgFxHmwMkQTPH",
     "xprv9vHkqa6EV4sPZHYqZznhT2NPtPCjKuDKGY38FBWLvgaDx45zo9WQRUT3dKYnjwih2yJD9mkrocEZXo1ex8G81dwSM1fwqWpWkeS3v86pgKt"),
    (V2, "m/0/2147483647h/1/2147483646h/2",
     "xpub6FnCn6nSzZAw5Tw7cgR9bi15UV96gLZhjDstkXXxvCLsUXBGXPdSnLFbdpq8p9HmGsApME5hQTZ3emM2rnY5agb9rXpVGyy3bdW6EEgAtqt",
     "xprvA2nrNbFZABcdryreWet9Ea4LvTJcGsqrMzxHx98MMrotbir7yrKCEXw7nadnHM8Dq38EGfSh6dqA9QWTyefMLEcBYJUuekgW4BYPJcr9E7j"),
    # leading zeros in private key
    (V3, "m/0h",
     "xpub68NZiKmJWnxxS6aaHmn81bvJeTESw724CRDs6HbuccFQN9Ku14VQrADWgqbhhTHBaohPX4CjNLf9fq9MYo6oDaPPLPxSb7gwQN3ih19Zm4Y",
     "xprv9uPDJpEQgRQfDcW7BkF7eTya6RPxXeJCqCJGHuCJ4GiRVLzkTXBAJMu2qaMWPrS7AANYqdq6vcBcBUdJCVVFceUvJFjaPdGZ2y9WACViL4L"),
]

@pytest.mark.parametrize('seed,path,xpub,xprv', VECTORS)
def test_vectors(seed, path, xpub, xprv):
    m = PrvKeyNode.master_key(bip39_seed=bytes.fromhex(seed))
    node = m.derive_path(str2path(path))

    assert node.extended_public_key() == xpub
    assert node.extended_private_key() == xprv
    assert node.to_public().extended_public_key() == xpub

    # round trip, either class
    assert PrvKeyNode.parse(xprv) == PrvKeyNode.parse(node.serialize_private())
    assert PubKeyNode.parse(xpub).extended_public_key() == xpub

def test_repr():
    m = PrvKeyNode.master_key(bip39_seed=bytes.fromhex(V1))
    assert repr(m) == "m"
    assert repr(m.derive_path(str2path("m/0h/1/2h"))) == "m/0'/1/2'"

def test_public_derivation_matches():
    # non-hardened steps from a parsed xpub agree with private derivation
    m = PrvKeyNode.master_key(bip39_seed=bytes.fromhex(V1))
    m0h = m.derive_path(str2path("m/0h"))
    M0h = PubKeyNode.parse(m0h.extended_public_key())

    for path in [ [1], [1, 2], [0, 1000, 2**31-1] ]:
        assert M0h.derive_path(path).extended_public_key() == \
                    m0h.derive_path(path).extended_public_key()

def test_parse_input_types():
    xprv = VECTORS[0][3]
    raw = base58.b58decode_check(xprv)

    assert PrvKeyNode.parse(xprv).extended_private_key() == xprv
    assert PrvKeyNode.parse(raw).extended_private_key() == xprv
    assert PrvKeyNode.parse(BytesIO(raw)).extended_private_key() == xprv

    with pytest.raises(ValueError):
        PrvKeyNode.parse(1584784554)

@pytest.mark.parametrize('bad', [
    'xpub661MyMwAqRbcFtXgS5sYJABqqG9YLmC4Q1Rdap9gSE8NqtwybGhePY2gZ29ESFjqJoCu1Rupje8YtGqsefD265TMg7usUDFdp6W1EGMcet9',
    'hello',
    base58.b58encode_check(b'\x04\x88\xb2\x1e' + bytes(70)).decode(),
])
def test_parse_garbage(bad):
    with pytest.raises(InvalidInput):
        PubKeyNode.parse(bad)

def test_parse_bad_pubkey():
    # right length, but key bytes are not on the curve
    raw = base58.b58decode_check(VECTORS[0][2])
    with pytest.raises(InvalidInput):
        PubKeyNode.parse(raw[0:45] + b'\x05' + bytes(32))

def test_equality():
    m0 = PrvKeyNode.master_key(bip39_seed=bytes.fromhex(V2))
    m1 = PrvKeyNode.parse(m0.extended_private_key())
    assert m0 == m1
    assert m0 != PubKeyNode.parse(m0.extended_public_key())
    assert m0.to_public() == PubKeyNode.parse(m0.extended_public_key())

def test_hardened_from_public():
    M = PubKeyNode.parse(VECTORS[2][2])
    for idx in [ 2**31, 2**31 + 256 ]:
        with pytest.raises(DerivationError):
            M.ckd(idx)
        # still a RuntimeError, like all our errors
        with pytest.raises(RuntimeError):
            M.ckd(idx)

def test_depth_limit():
    # serialized depth is one byte; nodes refuse to go past it
    m = PrvKeyNode.master_key(bip39_seed=bytes.fromhex(V1))
    deep = PrvKeyNode.parse(m.extended_private_key())
    deep.depth = MAX_BIP32_DEPTH
    deep.parsed_parent_fingerprint = b'\x01\x02\x03\x04'

    for node in [ deep, deep.to_public() ]:
        assert len(node.serialize_public()) == 78
        with pytest.raises(DerivationError):
            node.ckd(0)
        with pytest.raises(DerivationError):
            node.derive_path([1])

    deep.depth = MAX_BIP32_DEPTH - 1
    assert deep.ckd(0).depth == MAX_BIP32_DEPTH
    assert deep.ckd(0).extended_private_key()[0:4] == 'xprv'

@pytest.mark.parametrize('testnet', [False, True])
def test_parse_extended_key(testnet):
    m = PrvKeyNode.master_key(bip39_seed=bytes.fromhex(V1), testnet=testnet)
    xprv = m.extended_private_key()
    xpub = m.extended_public_key()
    assert xprv[0:4] == ('tprv' if testnet else 'xprv')
    assert xpub[0:4] == ('tpub' if testnet else 'xpub')

    got = parse_extended_key(xprv, testnet=testnet)
    assert isinstance(got, PrvKeyNode)
    assert got == m

    got = parse_extended_key(xpub, testnet=testnet)
    assert type(got) is PubKeyNode
    assert got.extended_public_key() == xpub

    # other network's keys are refused
    for k in [ xprv, xpub ]:
        with pytest.raises(InvalidInput):
            parse_extended_key(k, testnet=not testnet)

# EOF

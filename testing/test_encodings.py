#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Test encoding/serializations from utils.py
#
import pytest

from wsigner.constants import HARDENED, MAX_BIP32_DEPTH, LOGIN_PATH, CLIENT_SECRET_PATH
from wsigner.exceptions import DerivationError, InvalidInput, DecryptionError
from wsigner.utils import path2str, str2path, check_path, decode_hex
from wsigner.utils import encrypt_mnemonic, decrypt_mnemonic, blob_key_from_pubkey

@pytest.mark.parametrize('case',
    [ 'm', 'm/1/2/3', 'm/1h/2h/3/4' ]
)
def test_paths(case):
    assert path2str(str2path(case)) == case
    with pytest.raises(ValueError) as err:
        str2path("m/84h/0h/0h/2147483648h")
    assert err.value.args[0] == 'Hardened path component out of range: 2147483648h'
    with pytest.raises(ValueError) as err:
        str2path("m/84h/h/0h")
    assert err.value.args[0] == 'Malformed bip32 path component: h'
    with pytest.raises(ValueError) as err:
        str2path("m/84h/0h/2147483648")
    assert err.value.args[0] == 'Non-hardened path component out of range: 2147483648'

def test_fixed_paths():
    assert path2str(LOGIN_PATH) == 'm/1195487518'
    assert path2str(CLIENT_SECRET_PATH) == 'm/1885434739'
    assert str2path("m/44'/0p/0H") == [44|HARDENED, HARDENED, HARDENED]

@pytest.mark.parametrize('path', [
    [], [0], (1, 2, 3), [HARDENED|84, HARDENED, HARDENED, 0, 5], [0xffff_ffff],
    [0] * MAX_BIP32_DEPTH,
])
def test_check_path_ok(path):
    assert check_path(path) == tuple(path)

@pytest.mark.parametrize('path', [
    'm/0/1', b'\x00', None, 5, [-1], [2**32], [1.0], [True], ['1'], [0] * (MAX_BIP32_DEPTH+1),
])
def test_check_path_bad(path):
    with pytest.raises(DerivationError):
        check_path(path)

def test_decode_hex():
    assert decode_hex('00ff') == b'\x00\xff'
    assert decode_hex('AB'*32, expect_len=32) == b'\xab'*32
    assert len(decode_hex('00'*64, expect_len=(32, 64))) == 64

    for bad in [ 'abc', 'zz', b'00', None ]:
        with pytest.raises(InvalidInput):
            decode_hex(bad)
    with pytest.raises(InvalidInput):
        decode_hex('00'*31, expect_len=32)

def test_mnemonic_blob():
    words = 'legal winner thank year wave sausage worth useful legal winner thank yellow'
    blob = encrypt_mnemonic(words, 'secret')
    assert words.encode() not in blob
    assert decrypt_mnemonic(blob, 'secret') == words

    # fresh nonce every time
    assert encrypt_mnemonic(words, 'secret') != blob

    with pytest.raises(DecryptionError):
        decrypt_mnemonic(blob, 'wrong')
    with pytest.raises(DecryptionError):
        decrypt_mnemonic(blob[:-1] + bytes([blob[-1] ^ 1]), 'secret')

def test_blob_key():
    k1 = blob_key_from_pubkey(b'\x02' * 33)
    assert len(k1) == 32
    assert k1 == blob_key_from_pubkey(b'\x02' * 33)
    assert k1 != blob_key_from_pubkey(b'\x03' * 33)

# EOF

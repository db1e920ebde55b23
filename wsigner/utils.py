# (c) Copyright 2021 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
import os, hashlib
from binascii import b2a_hex, a2b_hex, Error as BinasciiError
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.exceptions import InvalidTag
from .constants import *
from .exceptions import InvalidInput, DerivationError, DecryptionError

# show bytes as hex in a string
B2A = lambda x: b2a_hex(x).decode('ascii')

def force_bytes(foo):
    # convert strings to bytes where needed
    return foo.encode('utf-8') if isinstance(foo, str) else foo

def decode_hex(text, expect_len=None, what='value'):
    # strict hex decode, with optional length check (in bytes)
    if not isinstance(text, str):
        raise InvalidInput(f"{what} must be hex text")
    try:
        rv = a2b_hex(text)
    except (BinasciiError, ValueError):
        raise InvalidInput(f"{what} is not valid hex")
    if expect_len is not None and len(rv) not in (expect_len if isinstance(expect_len, tuple) else (expect_len,)):
        raise InvalidInput(f"{what} has wrong length: {len(rv)} bytes")
    return rv

def path_component_in_range(num: int) -> bool:
    # cannot be less than 0
    # cannot be more than (2 ** 31) - 1
    if 0 <= num < HARDENED:
        return True
    return False

def path2str(path):
    # take numeric path (list of numbers) and convert to human form
    # - standardizing on "m/84h" style
    return '/'.join(['m'] + [str(i & ~HARDENED)+('h' if i&HARDENED else '') for i in path])

def str2path(path):
    # normalize notation and return numbers
    rv = []

    for i in path.split('/'):
        if i == 'm':
            continue
        if not i:
            # trailing or duplicated slashes
            continue

        if i[-1] in "'phHP":
            if len(i) < 2:
                raise ValueError(f"Malformed bip32 path component: {i}")
            num = int(i[:-1], 0)
            if not path_component_in_range(num):
                raise ValueError(f"Hardened path component out of range: {i}")
            here = num | HARDENED
        else:
            here = int(i, 0)
            if not path_component_in_range(here):
                # cannot be less than 0
                # cannot be more than (2 ** 31) - 1
                raise ValueError(f"Non-hardened path component out of range: {i}")

        rv.append(here)

    return rv

def check_path(path):
    # validate numeric path from caller, return as tuple
    if isinstance(path, (str, bytes)):
        raise DerivationError("path must be a sequence of integers, not text")
    try:
        path = tuple(path)
    except TypeError:
        raise DerivationError("path must be a sequence of integers")

    if len(path) > MAX_BIP32_DEPTH:
        raise DerivationError(f"path too deep: {len(path)} components")

    for i in path:
        if isinstance(i, bool) or not isinstance(i, int):
            raise DerivationError(f"path component not an integer: {i!r}")
        if not (0 <= i <= 0xffff_ffff):
            raise DerivationError(f"path component out of range: {i}")

    return path

def pbkdf2_key(secret, salt):
    # 32-byte key from PBKDF2-HMAC-SHA512
    return hashlib.pbkdf2_hmac('sha512', force_bytes(secret), salt, PBKDF2_ROUNDS)[0:32]

def password_key(password):
    return pbkdf2_key(password, PASSWORD_SALT)

def blob_key_from_pubkey(pubkey):
    # key for persisted wallet data, from the client secret pubkey
    assert len(pubkey) == 33
    return pbkdf2_key(pubkey, BLOB_SALT)

def encrypt_mnemonic(mnemonic, password):
    # AES-256-GCM under a password-derived key: nonce(12) || ciphertext+tag
    nonce = os.urandom(12)
    return nonce + AESGCM(password_key(password)).encrypt(nonce, force_bytes(mnemonic), PASSWORD_SALT)

def decrypt_mnemonic(blob, password):
    try:
        plain = AESGCM(password_key(password)).decrypt(blob[0:12], blob[12:], PASSWORD_SALT)
    except InvalidTag:
        raise DecryptionError("wrong password for mnemonic")
    return plain.decode('utf-8')

# EOF

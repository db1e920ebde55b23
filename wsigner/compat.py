#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Wrappers for our choice of crypto libraries. AKA API Cleanup
#
# My standards:
# - pubkeys: 33 bytes, always compressed
# - private key: 32 bytes
# - signature: 64 bytes (r || s), always low-S
# - no DER, no PEM, no other serializations
# - message digests (for sig/verify) are already digested
# - ECDSA verify returns bool, doesn't raise exception
#
# libsecp256k1 (via coincurve) does the point math. It won't let us pick
# the nonce, so python-ecdsa does signing where that matters.
#
import hmac
import hashlib
from coincurve import PrivateKey, PublicKey
from coincurve.ecdsa import deserialize_compact, cdata_to_der
from ecdsa import SigningKey, SECP256k1, rfc6979
from ecdsa.util import sigencode_string_canonize

__all__ = [ 'sha256s', 'hash160', 'tagged_sha256', 'hmac_sha256', 'hmac_sha512',
            'CT_priv_to_pubkey', 'CT_pubkey_tweak_add', 'CT_sig_verify', 'CT_sign',
            'CT_sign_with_nonce', 'CT_rfc6979_nonce', 'CURVE_ORDER' ]

CURVE_ORDER = SECP256k1.order

def sha256s(msg):
    # single-shot SHA256
    return hashlib.sha256(msg).digest()

def hash160(x):
    # classic bitcoin nested hashes
    return hashlib.new('ripemd160', sha256s(x)).digest()

def tagged_sha256(tag, msg):
    # BIP-340 style: sha256(sha256(tag) || sha256(tag) || msg)
    th = sha256s(tag)
    return sha256s(th + th + msg)

def hmac_sha256(key, msg):
    return hmac.new(key, msg, hashlib.sha256).digest()

def hmac_sha512(key, msg):
    return hmac.new(key, msg, hashlib.sha512).digest()

def CT_priv_to_pubkey(priv):
    return PrivateKey(bytes(priv)).public_key.format()

def CT_pubkey_tweak_add(pub, tweak):
    # pub + tweak*G, raises ValueError if that's not a valid point
    return PublicKey(pub).add(tweak).format()

def CT_sig_verify(pub, msg_digest, sig):
    assert len(sig) == 64
    try:
        der = cdata_to_der(deserialize_compact(sig))
        return PublicKey(pub).verify(der, msg_digest, hasher=None)
    except ValueError:
        return False

def _signing_key(privkey):
    return SigningKey.from_string(bytes(privkey), curve=SECP256k1)

def CT_rfc6979_nonce(privkey, msg_digest, extra=b''):
    # deterministic nonce, same as libsecp256k1 when extra is the 'ndata' value
    secexp = int.from_bytes(bytes(privkey), 'big')
    return rfc6979.generate_k(CURVE_ORDER, secexp, hashlib.sha256, msg_digest,
                                    extra_entropy=extra)

def CT_sign_with_nonce(privkey, msg_digest, k):
    # ECDSA using the nonce given; caller takes care it's never reused
    assert len(msg_digest) == 32
    return _signing_key(privkey).sign_digest(msg_digest, k=k,
                                    sigencode=sigencode_string_canonize)

def CT_sign(privkey, msg_digest, low_r=True):
    # RFC6979 signature, grinding for a low R value like Bitcoin Core does:
    # - first try has no extra data, then a LE32 counter padded to 32 bytes
    assert len(msg_digest) == 32
    sk = _signing_key(privkey)
    counter = 0
    while 1:
        extra = b'' if not counter else counter.to_bytes(4, 'little') + bytes(28)
        sig = sk.sign_digest_deterministic(msg_digest, hashfunc=hashlib.sha256,
                                    sigencode=sigencode_string_canonize, extra_entropy=extra)
        if not low_r or sig[0] < 0x80:
            return sig
        counter += 1

# EOF

#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Anti-Exfil signing protocol (ECDSA sign-to-contract).
#
# Stops a malicious signer from leaking key bits through its choice of nonce:
#
#   host                                  signer
#   ----                                  ------
#   pick host_entropy (32 bytes)
#   host_commitment = H_data(entropy)  -->
#                                    <--  signer_commitment = R0 = k0*G
#                                         (k0 from RFC6979 w/ host_commitment)
#   host_entropy                       -->
#                                    <--  sig using k = k0 + H_point(R0 || entropy)
#   check sig.r == x(R0 + H_point(R0 || entropy)*G) and sig verifies
#
# Hashes are tagged as in libsecp256k1-zkp's ecdsa_s2c module.
#
import os

from .constants import AE_DATA_TAG, AE_POINT_TAG, HOST_ENTROPY_SIZE
from .compat import tagged_sha256, CT_priv_to_pubkey, CT_pubkey_tweak_add, CT_sig_verify
from .compat import CT_rfc6979_nonce, CT_sign_with_nonce, CURVE_ORDER

def pick_host_entropy():
    return os.urandom(HOST_ENTROPY_SIZE)

def host_commit(host_entropy):
    # what the host reveals in the first round
    assert len(host_entropy) == HOST_ENTROPY_SIZE
    return tagged_sha256(AE_DATA_TAG, host_entropy)

def _tweak(signer_commitment, host_entropy):
    t = tagged_sha256(AE_POINT_TAG, signer_commitment + host_entropy)
    if int.from_bytes(t, 'big') >= CURVE_ORDER:
        raise ValueError("tweak overflow")
    return t

def _base_nonce(privkey, msg_digest, host_commitment):
    return CT_rfc6979_nonce(privkey, msg_digest, extra=host_commitment)

def signer_commit(privkey, msg_digest, host_commitment):
    # [signer] first round: commit to the nonce point before seeing host entropy
    k0 = _base_nonce(privkey, msg_digest, host_commitment)
    return CT_priv_to_pubkey(k0.to_bytes(32, 'big'))

def sign(privkey, msg_digest, host_entropy):
    # [signer] second round: signature with the nonce tweaked by host entropy
    k0 = _base_nonce(privkey, msg_digest, host_commit(host_entropy))
    r0 = CT_priv_to_pubkey(k0.to_bytes(32, 'big'))
    t = int.from_bytes(_tweak(r0, host_entropy), 'big')

    return CT_sign_with_nonce(privkey, msg_digest, (k0 + t) % CURVE_ORDER)

def host_verify(sig, msg_digest, pubkey, host_entropy, signer_commitment):
    # [host] True if signature is valid and used the nonce that was committed to
    assert len(sig) == 64
    try:
        point = CT_pubkey_tweak_add(signer_commitment, _tweak(signer_commitment, host_entropy))
    except ValueError:
        return False

    expect_r = int.from_bytes(point[1:33], 'big') % CURVE_ORDER
    if int.from_bytes(sig[0:32], 'big') != expect_r:
        return False

    return CT_sig_verify(pubkey, msg_digest, sig)

# EOF

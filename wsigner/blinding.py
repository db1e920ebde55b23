#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Confidential transaction blinding keys, per SLIP-0077.
#
# - master blinding key comes from the wallet seed via SLIP-0021 symmetric key derivation
# - each output script gets its own blinding keypair, derived from the master key
#
from .constants import SLIP21_SEED_KEY, SLIP77_LABEL, BLINDING_KEY_SIZE
from .compat import hmac_sha256, hmac_sha512, CT_priv_to_pubkey

def slip21_node(seed, label):
    # SLIP-0021: m = HMAC-SHA512("Symmetric key seed", seed), child = HMAC-SHA512(m[0:32], 0x00 || label)
    root = hmac_sha512(SLIP21_SEED_KEY, seed)
    return hmac_sha512(root[0:32], b'\x00' + label)

def master_blinding_key_from_seed(seed):
    # the key is the right half of the node, left half is chain code
    return slip21_node(seed, SLIP77_LABEL)[32:64]

def blinding_key_from_script(master_blinding_key, script):
    # private blinding key for one output script
    assert len(master_blinding_key) == BLINDING_KEY_SIZE
    return hmac_sha256(bytes(master_blinding_key), bytes(script))

def blinding_pubkey_from_script(master_blinding_key, script):
    return CT_priv_to_pubkey(blinding_key_from_script(master_blinding_key, script))

# EOF

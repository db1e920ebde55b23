#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# System constants.
#

# high bit set in LE32 indicating hardened BIP-32 path component
HARDENED = 0x8000_0000

# BIP-32 serialized depth is one byte
MAX_BIP32_DEPTH = 255

# canonical key used to login (m/1195487518)
LOGIN_PATH = (0x4741b11e,)

# canonical key used to encrypt client data (m/1885434739)
CLIENT_SECRET_PATH = (0x70617373,)

# salts, PBKDF2 inputs
# - password: mnemonic held at rest
# - blob: persisted wallet blobs, keyed from pubkey at CLIENT_SECRET_PATH
PASSWORD_SALT = b'passsalt'
BLOB_SALT = b'blobsalt'
PBKDF2_ROUNDS = 2048

# BIP-32 version words: (public, private)
BIP32_MAINNET_VERSIONS = (0x0488B21E, 0x0488ADE4)
BIP32_TESTNET_VERSIONS = (0x043587CF, 0x04358394)

# SLIP-0021 / SLIP-0077 derivation of the master blinding key
SLIP21_SEED_KEY = b'Symmetric key seed'
SLIP77_LABEL = b'SLIP-0077'

# tags for BIP-340 style tagged hashes used by the Anti-Exfil (sign-to-contract) protocol
AE_DATA_TAG = b's2c/ecdsa/data'
AE_POINT_TAG = b's2c/ecdsa/point'

# size of things (bytes)
DIGEST_SIZE = 32
BLINDING_KEY_SIZE = 32
HOST_ENTROPY_SIZE = 32

# Seconds to wait for a hardware device before calling it busy
DEFAULT_DEVICE_TIMEOUT = 60

# Device error codes, as found in 'code' of an error response
ERR_BAD_REQUEST = 400
ERR_REJECTED = 401           # user declined on device
ERR_UNKNOWN_CMD = 404
ERR_TIMEOUT = 408            # no user response in time
ERR_BAD_STATE = 409          # eg. AE reveal w/o commit
ERR_NOT_SUPPORTED = 501
ERR_UNAVAILABLE = 503        # busy, locked or unplugged

# Recognized keys in a hardware device descriptor: canonical name => accepted aliases
DEVICE_CAPABILITY_KEYS = {
    'supports_low_r': ('supports_low_r', 'low_r'),
    'supports_arbitrary_scripts': ('supports_arbitrary_scripts', 'arbitrary_scripts'),
    'supports_liquid': ('supports_liquid', 'liquid'),
    'supports_host_unblinding': ('supports_host_unblinding', 'host_unblinding'),
    'supports_ae_protocol': ('supports_ae_protocol', 'ae_protocol'),
}

# where the emulator listens by default
EMULATOR_PIPE = '/tmp/wsigner-pipe'

# EOF

#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#

__version__ = '0.1.0'

__all__ = [ 'signer', 'exceptions', 'transport', 'device', 'constants', 'utils', 'network',
            'capabilities', 'emulator' ]

# build a signer for a network
from wsigner.signer import Signer, SignerKind, make_watch_only, make_hardware, make_software
from wsigner.network import NetworkParams, get_network

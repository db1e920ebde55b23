#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# Network (chain) parameters the signer needs to know about.
#
import json
from dataclasses import dataclass, asdict

from .exceptions import InvalidInput

@dataclass(frozen=True)
class NetworkParams:
    '''
        Read-only chain context. Signers keep their own copy.
    '''
    name: str
    mainnet: bool = True
    btc_version: int = 0x00         # p2pkh address version byte
    liquid: bool = False            # confidential assets chain?

    def __post_init__(self):
        if not (0 <= self.btc_version <= 0xff):
            raise InvalidInput(f"address version byte out of range: {self.btc_version}")

    @property
    def is_testnet(self):
        return not self.mainnet

    @classmethod
    def from_dict(cls, d):
        # accepts our field names, or the longer ones seen in wallet configs
        if not isinstance(d, dict):
            raise InvalidInput("network config must be a mapping")
        try:
            return cls(name=str(d.get('name', d.get('network', 'custom'))),
                       mainnet=bool(d.get('mainnet', True)),
                       btc_version=int(d.get('btc_version', d.get('p2pkh_version', 0))),
                       liquid=bool(d.get('liquid', False)))
        except (TypeError, ValueError) as exc:
            raise InvalidInput(f"bad network config: {exc}")

    @classmethod
    def from_json(cls, text):
        try:
            d = json.loads(text)
        except ValueError as exc:
            raise InvalidInput(f"bad network JSON: {exc}")
        return cls.from_dict(d)

    def as_dict(self):
        return asdict(self)

NETWORKS = {
    'mainnet': NetworkParams('mainnet', mainnet=True, btc_version=0x00),
    'testnet': NetworkParams('testnet', mainnet=False, btc_version=0x6f),
    'liquid': NetworkParams('liquid', mainnet=True, btc_version=0x39, liquid=True),
    'testnet-liquid': NetworkParams('testnet-liquid', mainnet=False, btc_version=0x24, liquid=True),
    'localtest-liquid': NetworkParams('localtest-liquid', mainnet=False, btc_version=0xeb, liquid=True),
}

def get_network(name):
    try:
        return NETWORKS[name]
    except KeyError:
        raise InvalidInput(f"unknown network: {name} (try: {', '.join(NETWORKS)})")

# EOF

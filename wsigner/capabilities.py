#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# What a signer can do. Computed once, when the signer is built.
#
from enum import IntEnum
from dataclasses import dataclass

from .constants import DEVICE_CAPABILITY_KEYS
from .exceptions import InvalidInput

class LiquidSupportLevel(IntEnum):
    NONE = 0        # Liquid is not supported
    LITE = 1        # Liquid is supported, unblinding is done on the host

class AEProtocolSupportLevel(IntEnum):
    NONE = 0        # only vanilla EC signatures
    OPTIONAL = 1    # both AE and vanilla EC signatures
    MANDATORY = 2   # AE protocol required, vanilla EC signatures not supported

def _parse_level(enum_cls, value, key):
    # accept 0/1/2 or the names: "none", "lite", "optional", "mandatory"
    if isinstance(value, bool):
        value = int(value)
    if isinstance(value, int):
        try:
            return enum_cls(value)
        except ValueError:
            pass
    elif isinstance(value, str):
        try:
            return enum_cls[value.strip().upper()]
        except KeyError:
            pass
    raise InvalidInput(f"device descriptor: bad value for {key}: {value!r}")

def _parse_flag(value, key):
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    raise InvalidInput(f"device descriptor: bad value for {key}: {value!r}")

def device_fields(descriptor):
    # where the device details live: top level, or under "device"
    inner = descriptor.get('device')
    if isinstance(inner, dict):
        return dict(descriptor, **inner)
    return descriptor

def _lookup(fields, canonical):
    for alias in DEVICE_CAPABILITY_KEYS[canonical]:
        if alias in fields and fields[alias] is not None:
            return fields[alias], alias
    return None, canonical

@dataclass(frozen=True)
class Capabilities:
    low_r: bool = False
    arbitrary_scripts: bool = False
    liquid: LiquidSupportLevel = LiquidSupportLevel.NONE
    host_unblinding: bool = False
    ae_protocol: AEProtocolSupportLevel = AEProtocolSupportLevel.NONE

    @classmethod
    def for_watch_only(cls, network):
        # cannot sign at all; can still unblind if given the key
        return cls(liquid=LiquidSupportLevel.LITE if network.liquid else LiquidSupportLevel.NONE,
                   host_unblinding=network.liquid)

    @classmethod
    def for_software(cls, network):
        return cls(low_r=True, arbitrary_scripts=True,
                   liquid=LiquidSupportLevel.LITE if network.liquid else LiquidSupportLevel.NONE,
                   host_unblinding=network.liquid,
                   ae_protocol=AEProtocolSupportLevel.OPTIONAL)

    @classmethod
    def from_descriptor(cls, descriptor):
        # typed extraction of the keys we know; anything missing is "not supported"
        fields = device_fields(descriptor)
        kws = dict()

        for canonical, attr in [ ('supports_low_r', 'low_r'),
                                 ('supports_arbitrary_scripts', 'arbitrary_scripts'),
                                 ('supports_host_unblinding', 'host_unblinding') ]:
            value, key = _lookup(fields, canonical)
            if value is not None:
                kws[attr] = _parse_flag(value, key)

        value, key = _lookup(fields, 'supports_liquid')
        if value is not None:
            kws['liquid'] = _parse_level(LiquidSupportLevel, value, key)

        value, key = _lookup(fields, 'supports_ae_protocol')
        if value is not None:
            kws['ae_protocol'] = _parse_level(AEProtocolSupportLevel, value, key)

        return cls(**kws)

# EOF

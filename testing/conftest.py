import pytest

from wsigner.network import get_network
from wsigner.signer import make_software, make_hardware
from wsigner.emulator import Emulator, EmulatedDevice, DEFAULT_MNEMONIC

# BIP-44 account zero for DEFAULT_MNEMONIC
ABANDON_XPRV = 'xprv9s21ZrQH143K3GJpoapnV8SFfukcVBSfeCficPSGfubmSFDxo1kuHnLisriDvSnRRuL2Qrg5ggqHKNVpxR86QEC8w35uxmGoggxtQTPvfUu'
ABANDON_44_XPUB = 'xpub6BosfCnifzxcFwrSzQiqu2DBVTshkCXacvNsWGYJVVhhawA7d4R5WSWGFNbi8Aw6ZRc1brxMyWMzG3DSSSSoekkudhUd9yLb6qx39T9nMdj'

@pytest.fixture(params=['mainnet', 'testnet', 'liquid', 'testnet-liquid'])
def any_network(request):
    return get_network(request.param)

@pytest.fixture
def mainnet():
    return get_network('mainnet')

@pytest.fixture
def liquid():
    return get_network('liquid')

@pytest.fixture
def mnemonic():
    return DEFAULT_MNEMONIC

@pytest.fixture
def soft_signer(mainnet, mnemonic):
    with make_software(mainnet, mnemonic, password='pw') as s:
        yield s

@pytest.fixture
def emu():
    # emulator holding DEFAULT_MNEMONIC, mainnet
    return Emulator()

@pytest.fixture
def hw_factory(emu):
    # make a hardware signer on the emulator: hw_factory(network, ae_protocol='none', ...)
    def doit(network, timeout=5, **kws):
        desc = emu.descriptor(**kws)
        return make_hardware(network, desc, proxy=EmulatedDevice(emu), timeout=timeout)
    return doit

# EOF

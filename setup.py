#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
#
# Wallet signer abstraction: software, hardware and watch-only signers
#
# To use this command to install and yet be able to edit the code (here). Great for dev:
#
#   pip install --editable .
#
# with cli dependencies
#
#   pip install --editable '.[cli]'
#
# with test dependencies
#
#   pip install --editable '.[test]'
#
import re
from setuptools import setup

# read version w/o importing package (needs our requirements)
with open("wsigner/__init__.py", "r") as fh:
    __version__ = re.search(r"^__version__ = '([^']+)'", fh.read(), re.M).group(1)

# these minimum versions are tested, some earlier values would probably work too.
requirements = [
    'cbor2>=5.4.1',
    'coincurve>=15.0.1',
    'ecdsa>=0.18.0',
    'mnemonic>=0.20',
    'base58>=2.1.0',
    'cryptography>=3.4',
]

cli_requirements = [
    'click>=8.0.3',
]

test_requirements = [
    'pytest',
] + cli_requirements

with open("README.md", "r") as fh:
    long_description = fh.read()

setup(
    name='wallet-signer',
    version=__version__,
    packages=[ 'wsigner' ],
    python_requires='>3.6.0',
    install_requires=requirements,
    extras_require={
        'cli': cli_requirements,
        'test': test_requirements,
    },
    author='Coinkite Inc.',
    author_email='support@coinkite.com',
    description="One signing interface for software, hardware and watch-only wallets",
    long_description=long_description,
    long_description_content_type="text/markdown",
    entry_points='''
        [console_scripts]
        wsigner=wsigner.cli:main
        wsigner-emulator=wsigner.emulator:main
    ''',
    classifiers=[
        'Operating System :: POSIX :: Linux',
        'Operating System :: Microsoft :: Windows',
        'Operating System :: MacOS :: MacOS X',
    ],
)

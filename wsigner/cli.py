#!/usr/bin/env python
#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#
# To use this, install with:
#
#   pip install --editable .[cli]
#
# That will create the command "wsigner" in your path.
#
import click, sys, os, json
from getpass import getpass

from wsigner.utils import B2A, path2str, str2path, decode_hex
from wsigner.constants import *
from wsigner.exceptions import SignerError
from wsigner.network import get_network, NETWORKS
from wsigner.signer import make_software, make_hardware
from wsigner.transport import UnixSocketProxy
from wsigner import __version__

# dict of options that apply to all commands
global global_opts
global_opts = dict()

# Cleanup display (supress traceback) for user-feedback exceptions
_sys_excepthook = sys.excepthook
def my_hook(ty, val, tb):
    if issubclass(ty, SignerError):
        print("FATAL: %s" % val, file=sys.stderr)
    else:
        return _sys_excepthook(ty, val, tb)
sys.excepthook=my_hook

def fail(msg):
    # show message and stop
    click.echo(f"FAILURE: {msg}", err=True)
    sys.exit(1)

def get_signer():
    # Build the signer to work with: device on a pipe, or keys from env/prompt
    network = get_network(global_opts.get('network') or 'mainnet')

    if global_opts.get('verbose'):
        import wsigner.transport as tt
        tt.VERBOSE = True

    pipe = global_opts.get('pipe')
    if pipe:
        proxy = UnixSocketProxy.find_emulator(pipe)
        if not proxy:
            fail(f"Nothing listening on {pipe}. Start emulator first?")
        click.get_current_context().call_on_close(proxy.close)

        descriptor = global_opts.get('descriptor') or '{"name": "device"}'
        try:
            descriptor = json.loads(descriptor)
        except ValueError as exc:
            fail(f"Device descriptor is not JSON: {exc}")

        return make_hardware(network, descriptor, proxy=proxy)

    secret = os.environ.get('WSIGNER_MNEMONIC')
    if not secret:
        secret = getpass("Enter mnemonic or extended key: ")
    if not secret.strip():
        fail("Need a mnemonic or extended key.")

    return make_software(network, secret)

def parse_path(path):
    try:
        return str2path(path)
    except ValueError as exc:
        fail(str(exc))

def dump_dict(d):
    for k,v in d.items():
        if isinstance(v, (bytes, bytearray)):
            v = B2A(v)
        elif hasattr(v, 'name') and not isinstance(v, str):
            # enums
            v = v.name.lower()

        click.echo('%s: %s' % (k, v))

# Accept any prefix of a command name.
#
# from <https://click.palletsprojects.com/en/8.0.x/advanced/?#command-aliases>
class AliasedGroup(click.Group):
    def get_command(self, ctx, cmd_name):
        rv = click.Group.get_command(self, ctx, cmd_name)
        if rv is not None:
            return rv
        matches = [x for x in self.list_commands(ctx)
                   if x.startswith(cmd_name)]
        if not matches:
            return None
        elif len(matches) == 1:
            return click.Group.get_command(self, ctx, matches[0])
        ctx.fail(f"Ambiguous command. Pick one of: {' | '.join(sorted(matches))}")

    def resolve_command(self, ctx, args):
        # always return the full command name
        _, cmd, args = super().resolve_command(ctx, args)
        return cmd.name, cmd, args


#
# Options we want for all commands
#
@click.group(cls=AliasedGroup)
@click.option('--network', '-n', default='mainnet', type=click.Choice(list(NETWORKS)),
                    help="Chain to operate on")
@click.option('--pipe', '-p', default=None, metavar="PATH",
                    help=f"Use hardware device (or emulator) on this Unix socket, like {EMULATOR_PIPE}")
@click.option('--descriptor', '-d', default=None, metavar="JSON",
                    help="Device descriptor, for use with --pipe")
@click.option('--verbose', '-v', is_flag=True,
                    help="Show traffic with device.")
@click.option('--pdb', is_flag=True,
                    help="Prepare patient for surgery to remove bugs.")
@click.version_option(version=__version__)
def main(**kws):
    '''
    Derive keys and sign with a software or hardware signer.

    Software keys come from $WSIGNER_MNEMONIC (a mnemonic or an extended key),
    or are prompted for.

    You can use "x" for "xpub": any distinct prefix for all commands.
    '''
    # implement PDB option here
    if kws.pop('pdb', False):
        import pdb
        def doit(ex_cls, ex, tb):
            pdb.pm()
        sys.excepthook = doit

    # global options, mostly not considered here
    global global_opts
    global_opts.update(kws)


@main.command('debug')
def interactive_debug():
    "Start interactive (local) debug session."
    import code

    # useful stuff
    import pdb
    from pdb import pm
    S = get_signer()

    cli = code.InteractiveConsole(locals=dict(globals(), **locals()))
    cli.interact(banner="""\
Go for it: 'S' is the signer ... S.get_bip32_xpub([0]) S.sign_hash([0], bytes(32))""", exitmsg='')

@main.command('xpub')
@click.argument('path', default='m')
def get_xpub(path):
    "Show the BIP-32 xpub for a derivation path, like m/84h/0h/0h"
    with get_signer() as s:
        click.echo(s.get_bip32_xpub(parse_path(path)))

@main.command('sign')
@click.argument('path')
@click.argument('digest')
@click.option('--ae', is_flag=True, help="Use Anti-Exfil protocol")
def sign_digest(path, digest, ae):
    "Sign a 32-byte digest (hex) with the key at path; shows compact signature"
    digest = decode_hex(digest, expect_len=DIGEST_SIZE, what='digest')

    with get_signer() as s:
        sig = s.sign_hash(parse_path(path), digest, use_ae=ae)

    click.echo(B2A(sig))

@main.command('blinding-key')
@click.argument('script')
@click.option('--private', is_flag=True, help="Show the private key as well")
def blinding_key(script, private):
    "Show the Liquid blinding pubkey for a scriptPubKey (hex)"
    script = decode_hex(script, what='script')

    with get_signer() as s:
        if not s.is_liquid():
            fail(f"Network {s.network.name} is not Liquid.")
        if not s.has_master_blinding_key() and s.is_hardware():
            s.request_master_blinding_key()

        click.echo(B2A(s.get_blinding_pubkey_from_script(script)))
        if private:
            click.echo(B2A(s.get_blinding_key_from_script(script)))

@main.command('caps')
def show_capabilities():
    "Show what the signer can do"
    with get_signer() as s:
        dump_dict(dict(kind=s.kind.value,
                       network=s.network.name,
                       low_r=s.supports_low_r(),
                       arbitrary_scripts=s.supports_arbitrary_scripts(),
                       liquid=s.get_liquid_support(),
                       host_unblinding=s.supports_host_unblinding(),
                       ae_protocol=s.get_ae_protocol_support(),
                       watch_only=s.is_watch_only()))

@main.command('login')
@click.option('--challenge', '-c', default=None, metavar="HEX",
                    help="32-byte challenge digest to sign")
def login(challenge):
    "Show the login key (and sign a challenge with it)"
    with get_signer() as s:
        click.echo(f'{path2str(LOGIN_PATH)} => {s.get_login_xpub().extended_public_key()}')

        if challenge:
            digest = decode_hex(challenge, expect_len=DIGEST_SIZE, what='challenge')
            click.echo(B2A(s.sign_login_challenge(digest)))

# EOF

import lighths
import lighths.onion
import lighths.ring
import lighths.cache
import lighths.consensus

import argparse
import logging
import base64
import sys

log_format = "%(levelname)s: %(message)s"
log_levels = {None: logging.ERROR, 1: logging.WARNING, 2: logging.INFO}

default_flavor = 'unflavored'

def _snapshot(argv):
    if argv.consensus is not None:
        fields = lighths.cache.load(argv.consensus)
    else:
        fields = lighths.cache.consensus.get(
            default_flavor, argv.cache_dir, argv.time)

    return lighths.consensus.Snapshot.from_consensus(
        fields, fields.get('descriptors'))

def descriptor_ids(argv, out):
    replicas = range(lighths.constants.replicas)
    if argv.replica is not None:
        replicas = [argv.replica]

    for replica in replicas:
        descriptor_id = lighths.onion.descriptor_id(
            argv.onion, replica, argv.time)
        print('{} {}'.format(replica,
            str(base64.b32encode(descriptor_id), 'ascii').lower()), file=out)

def hsdirs(argv, out):
    snapshot = _snapshot(argv)
    relays = lighths.ring.responsible_directories(
        snapshot, argv.onion, argv.time)

    for idx, relay in enumerate(relays):
        replica = idx // lighths.constants.spread
        print('{} {} {} {}:{}'.format(replica, relay.fingerprint,
            relay.nickname, relay.address, relay.orport), file=out)

def main(args=None, out=sys.stdout):
    parser = argparse.ArgumentParser(prog='lighths')
    parser.add_argument('-v', action='count',
                        help='Verbose output (up to -vvv)')
    parser.add_argument('--time', type=int, required=False, default=None,
        metavar='stamp', help='UNIX time used for descriptor IDs.'
        + ' (default: now)')
    subparsers = parser.add_subparsers(dest='command')
    subparsers.required = True

    parser_ids = subparsers.add_parser('descriptor-id',
        help='Compute the descriptor IDs of an onion address.')
    parser_ids.add_argument('onion', help='Onion address.')
    parser_ids.add_argument('-r', '--replica', type=int, required=False,
        default=None, choices=range(lighths.constants.replicas),
        help='Only print this replica. (default: all)')
    parser_ids.set_defaults(run=descriptor_ids)

    parser_dirs = subparsers.add_parser('hsdirs',
        help='List the HSDirs responsible for an onion address.')
    parser_dirs.add_argument('onion', help='Onion address.')
    parser_dirs.add_argument('--consensus', required=False, default=None,
        metavar='path', help='Parsed consensus (JSON) to use.')
    parser_dirs.add_argument('--cache-dir', required=False, default=None,
        metavar='path', help='Look for {} in this directory.'.format(
        lighths.cache.cache_directory) + ' (default: working directory)')
    parser_dirs.set_defaults(run=hsdirs)

    argv = parser.parse_args(args)
    logging.basicConfig(
        format=log_format, level=log_levels.get(argv.v, logging.DEBUG))

    argv.run(argv, out)
    return 0

if __name__ == '__main__':
    sys.exit(main())

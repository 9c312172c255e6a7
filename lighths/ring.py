"""
HSDir ring: which directories hold the descriptors of a hidden service.
"""

import bisect
import logging

from . import constants, onion


class NoDirectoriesAvailable(RuntimeError):
    pass


def _ascending(fingerprints):
    return all(a <= b for a, b in zip(fingerprints, fingerprints[1:]))


def successors(fingerprints, descriptor_id, spread=constants.spread):
    """Indices of the `spread` ring successors of a descriptor ID.

    The first successor is the first fingerprint greater or equal to the
    descriptor ID, wrapping around to the start of the ring. Rings smaller
    than `spread` yield repeated indices.

    :param list fingerprints: ascending uppercase hex fingerprints
    :param bytes descriptor_id: 20-byte descriptor ID

    :returns: a list of `spread` indices into fingerprints
    """
    if not fingerprints:
        raise NoDirectoriesAvailable('The HSDir ring is empty.')

    key = descriptor_id.hex().upper()
    start = bisect.bisect_left(fingerprints, key) % len(fingerprints)
    return [(start + i) % len(fingerprints) for i in range(spread)]


def responsible_directories(snapshot, address, now=None):
    """Find the (usually six) HSDirs responsible for an onion address.

    :param snapshot: consensus snapshot (see consensus.Snapshot)
    :param str address: onion address of the hidden service
    :param now: UNIX time used to compute descriptor IDs (default: now)

    :returns: list of relays, replica 0 first, each replica in ring order
    """
    # Fail on malformed addresses before touching the ring.
    onion.decode(address)

    ring = snapshot.relays_with_flag(constants.hsdir_flag)
    fingerprints = list(ring)
    if not _ascending(fingerprints):
        fingerprints.sort()

    relays = []
    for replica in range(constants.replicas):
        descriptor_id = onion.descriptor_id(address, replica, now)
        for idx in successors(fingerprints, descriptor_id):
            relays.append(ring[fingerprints[idx]])

    logging.debug('Ring: {} responsible HSDirs for {} among {}.'.format(
        len(relays), address, len(fingerprints)))

    return relays

"""
Read-only consensus snapshot used for directory and relay lookups.
"""

import collections
import logging

from base64 import b64decode

from . import constants


class InvalidConsensus(Exception):
    pass


class Relay(collections.namedtuple('Relay', [
        'nickname', 'fingerprint', 'address', 'orport', 'flags', 'onion_key'])):
    """A relay as seen in the consensus.

    :var str fingerprint: 40 uppercase hex characters (SHA1 of identity key)
    :var bytes onion_key: DER-encoded RSA onion key, or None if unknown
    """

    def __str__(self):
        return '{} (${})'.format(self.nickname, self.fingerprint)


def normalize_fingerprint(fingerprint):
    """Accept '$ABCD...', 'ABCD EF01 ...' or lowercase hex fingerprints."""
    fingerprint = fingerprint.strip().lstrip('$').replace(' ', '').upper()
    if len(fingerprint) != 40:
        raise ValueError('Invalid fingerprint: {}'.format(fingerprint))

    try:
        bytes.fromhex(fingerprint)
    except ValueError:
        raise ValueError('Invalid fingerprint: {}'.format(fingerprint))

    return fingerprint


class Snapshot:
    """Relays of one consensus, ordered by ascending fingerprint.

    The snapshot never changes once built: lookups made while building a
    request all see the same view of the network.
    """

    def __init__(self, relays):
        ordered = sorted(relays, key=lambda relay: relay.fingerprint)
        self.routers = collections.OrderedDict(
            (relay.fingerprint, relay) for relay in ordered)

    def __len__(self):
        return len(self.routers)

    def __iter__(self):
        return iter(self.routers)

    def __contains__(self, fingerprint):
        return self.relay(fingerprint) is not None

    def relay(self, fingerprint):
        try:
            fingerprint = normalize_fingerprint(fingerprint)
        except ValueError:
            return None
        return self.routers.get(fingerprint)

    def relays_with_flag(self, flag):
        return collections.OrderedDict(
            (fingerprint, relay) for fingerprint, relay in self.routers.items()
            if flag in relay.flags)

    @staticmethod
    def _parse_router(router, descriptors):
        # Routers in a parsed consensus carry their identity in base64.
        try:
            identity = b64decode(router['identity'] + '====')
        except (KeyError, ValueError):
            raise InvalidConsensus('Invalid router: {}'.format(router))

        onion_key = router.get('onion-key')
        descriptor = descriptors.get(router.get('digest'))
        if onion_key is None and descriptor is not None:
            onion_key = descriptor.get('onion-key')
        if onion_key is not None:
            onion_key = b64decode(onion_key + '====')

        return Relay(
            nickname=router.get('nickname'),
            fingerprint=identity.hex().upper(),
            address=router['address'],
            orport=int(router['orport']),
            flags=tuple(router.get('flags', ())),
            onion_key=onion_key)

    @staticmethod
    def from_consensus(consensus, descriptors=None):
        """Build a snapshot from a parsed consensus.

        :param consensus: dictionary with a 'routers' list, each router with
                          'nickname', 'identity', 'address', 'orport' and
                          'flags' fields
        :param descriptors: optional mapping digest -> descriptor providing
                            the routers' 'onion-key'
        """
        if descriptors is None:
            descriptors = dict()

        routers = consensus.get('routers')
        if not routers:
            raise InvalidConsensus('No routers listed.')

        relays = [Snapshot._parse_router(r, descriptors) for r in routers]
        snapshot = Snapshot(relays)

        logging.debug('Consensus: Snapshot of {} relays, {} HSDirs.'.format(
            len(snapshot), len(snapshot.relays_with_flag(constants.hsdir_flag))))

        return snapshot

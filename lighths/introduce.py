"""
Client side of the v2 introduction handshake (rend-spec-v2 1.8 to 1.10).
"""

import base64
import binascii
import collections
import hmac
import ipaddress
import logging

from . import circuit as _circuit
from . import constants, crypto, descriptor, exchange


class IntroductionPointUnknown(LookupError):
    pass


class ProtocolInvariantViolation(AssertionError):
    pass


class HandshakeFailure(IOError):
    pass


version = 2

Handshake = collections.namedtuple('Handshake', ['private_key', 'public'])


def build_handshake(relay, cookie, public):
    """Plaintext of INTRODUCE1 (version 2), as seen by the service.

        VER    (1)  version, always 2
        IP     (4)  rendezvous point IPv4 address
        PORT   (2)  rendezvous point OR port
        ID    (20)  rendezvous point identity digest
        KLEN   (2)  length of onion key
        KEY (KLEN)  rendezvous point onion key (DER)
        RC    (20)  rendezvous cookie
        g^x  (128)  Diffie-Hellman data

    :param relay: rendezvous point (see consensus.Relay)
    :param bytes cookie: rendezvous cookie
    :param bytes public: our ephemeral DH public value
    """
    if relay.onion_key is None:
        raise ValueError('No onion key known for {}.'.format(relay))
    if len(cookie) != constants.cookie_len:
        raise ProtocolInvariantViolation(
            'Invalid rendezvous cookie length: {}'.format(len(cookie)))
    if len(public) != constants.dh.width:
        raise ProtocolInvariantViolation(
            'Invalid DH public value length: {}'.format(len(public)))

    payload = bytes([version])
    payload += ipaddress.IPv4Address(relay.address).packed
    payload += relay.orport.to_bytes(2, 'big')
    payload += bytes.fromhex(relay.fingerprint)
    payload += len(relay.onion_key).to_bytes(2, 'big')
    payload += relay.onion_key
    payload += cookie
    payload += public
    return payload


def pack_introduce1(service_key_der, handshake):
    """INTRODUCE1 payload: PK_ID | hybrid-encrypted handshake.

    :param bytes service_key_der: service key of the introduction point
    :param bytes handshake: plaintext (see build_handshake)
    """
    key_hash = crypto.key_hash(service_key_der)
    if len(key_hash) != constants.hash_len:
        raise ProtocolInvariantViolation(
            'Invalid service key hash length: {}'.format(len(key_hash)))

    service_key = crypto.load_service_key(service_key_der)
    return key_hash + crypto.hybrid_encrypt(handshake, service_key)


def _introduction_point(text, snapshot):
    try:
        intros = descriptor.introduction_points(text)
    except descriptor.InvalidDescriptor as e:
        raise HandshakeFailure('Unusable descriptor: {}'.format(e))

    # Only the first introduction point is ever tried.
    intro = intros[0]
    try:
        fingerprint = base64.b32decode(intro.identity.upper()).hex().upper()
    except (binascii.Error, ValueError):
        raise IntroductionPointUnknown(
            'Invalid introduction point identity: {}'.format(intro.identity))

    relay = snapshot.relay(fingerprint)
    if relay is None:
        raise IntroductionPointUnknown(
            'Introduction point ${} not in consensus.'.format(fingerprint))

    return relay, intro.service_key


def send_introduce(link, snapshot, onion, rendezvous, now=None):
    """Introduce ourselves to a hidden service.

    The rendezvous circuit must already be established at the rendezvous
    point (carrying its `cookie` and with the point as `last_hop`). On
    success, the circuit reaches RENDEZVOUS_COMPLETE and the returned
    Handshake (also set as `rendezvous.handshake`) is what is needed to
    process the service's RENDEZVOUS2 (see complete_rendezvous).

    :param link: circuit factory (see circuit module)
    :param snapshot: consensus snapshot (see consensus.Snapshot)
    :param str onion: onion address of the hidden service
    :param rendezvous: established rendezvous circuit
    :param now: UNIX time used to compute descriptor IDs (default: now)

    :returns: the Handshake used for this attempt
    """
    text = exchange.fetch(link, snapshot, onion, now)
    if text is None:
        raise HandshakeFailure('No descriptor found for {}.'.format(onion))

    relay, service_key = _introduction_point(text, snapshot)

    point = rendezvous.last_hop
    if point is None or point.onion_key is None:
        raise HandshakeFailure('Rendezvous point onion key unknown.')

    private_key, public = crypto.ephemeral()
    try:
        payload = pack_introduce1(service_key,
            build_handshake(point, rendezvous.cookie, public))
    except ValueError as e:
        raise HandshakeFailure('Unable to build INTRODUCE1: {}'.format(e))

    logging.info('Introduce: Using {} to reach {}.'.format(relay, onion))
    try:
        intro = link.create_circuit()
        try:
            intro.create()
            intro.extend(relay)

            handshake = Handshake(private_key, public)
            rendezvous.handshake = handshake

            intro.send(payload, _circuit.Command.INTRODUCE1, False, 0)
            intro.wait_for_state(_circuit.State.INTRODUCED)
            logging.debug('Introduce: Acknowledged by {}.'.format(relay))
        finally:
            intro.destroy()

        rendezvous.wait_for_state(_circuit.State.RENDEZVOUS_COMPLETE)
    except _circuit.CircuitFailure as e:
        raise HandshakeFailure(
            'Introduction to {} failed: {}'.format(onion, e))

    logging.info('Introduce: Rendezvous with {} complete.'.format(onion))
    return handshake


def complete_rendezvous(handshake, payload):
    """Process a RENDEZVOUS2 body: g^y (128 bytes) | KH (20 bytes).

    :returns: the derived circuit keys (see crypto.kdf_tor)
    """
    width = constants.dh.width
    if len(payload) < width + constants.hash_len:
        raise HandshakeFailure(
            'RENDEZVOUS2 payload too short: {}'.format(len(payload)))

    public = payload[:width]
    key_hash = payload[width:width + constants.hash_len]

    try:
        secret = crypto.shared_secret(handshake.private_key, public)
    except ValueError as e:
        raise HandshakeFailure('Invalid RENDEZVOUS2: {}'.format(e))

    material = crypto.kdf_tor(secret)
    if not hmac.compare_digest(material.key_hash, key_hash):
        raise HandshakeFailure('Invalid RENDEZVOUS2 key hash.')

    return material

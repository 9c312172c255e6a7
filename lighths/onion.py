"""
Onion addresses and rotating descriptor identifiers (rend-spec-v2 1.3).
"""

import base64
import binascii
import hashlib
import time

from . import constants


class MalformedAddress(ValueError):
    def __init__(self, onion, reason):
        super().__init__('Invalid onion address {!r}: {}'.format(onion, reason))


def decode(onion):
    """Decode a base32 onion address into its 10-byte service identifier.

    :param str onion: 16-character address, with or without '.onion'

    :returns: the service identifier (bytes)
    """
    if not isinstance(onion, str):
        raise MalformedAddress(onion, 'expected a string')

    label = onion.strip().upper()
    if label.endswith('.ONION'):
        label = label[:-len('.ONION')]

    try:
        service_id = base64.b32decode(label)
    except (binascii.Error, ValueError) as e:
        raise MalformedAddress(onion, e)

    if len(service_id) != constants.service_id_len:
        raise MalformedAddress(onion, 'decoded to {} bytes, expected {}'.format(
            len(service_id), constants.service_id_len))

    return service_id


def encode(service_id):
    return str(base64.b32encode(service_id), 'ascii').lower()


def permanent_id(public_key_der):
    """First 10 bytes of the SHA1 digest of the service's public key."""
    digest = hashlib.sha1(public_key_der).digest()
    return digest[:constants.service_id_len]


def address(public_key_der):
    return encode(permanent_id(public_key_der))


def time_period(service_id, now=None):
    """Current time period of a service.

    Each service rotates at its own time of day: the first byte of the
    identifier shifts the period boundary by up to one full period.
    """
    if now is None:
        now = time.time()

    offset = service_id[0] * constants.rotation_period // 256
    return (int(now) + offset) // constants.rotation_period


def secret_id_part(service_id, replica, now=None):
    period = time_period(service_id, now)
    return hashlib.sha1(
        period.to_bytes(4, 'big') + bytes([replica])).digest()


def descriptor_id(onion, replica, now=None):
    """Compute the descriptor ID of an onion address for a given replica.

        descriptor-id = H(permanent-id | H(time-period | replica))

    :param str onion: onion address (see decode)
    :param int replica: replica index, 0 or 1
    :param now: UNIX time used to select the period (default: time.time())

    :returns: the 20-byte descriptor ID
    """
    if replica not in range(constants.replicas):
        raise ValueError('Invalid replica: {}'.format(replica))

    service_id = decode(onion)
    secret = secret_id_part(service_id, replica, now)
    return hashlib.sha1(service_id + secret).digest()

"""
Hidden service descriptors (rend-spec-v2 1.3), parsed with stem.
"""

import base64
import binascii
import collections
import re

from stem.descriptor.hidden_service import (HiddenServiceDescriptorV2,
    DecryptionFailure)

RE_PEM = re.compile(r"""-----BEGIN [^-]+-----
([A-Za-z0-9+/=\n]+)
-----END [^-]+-----""")


class InvalidDescriptor(Exception):
    pass


IntroductionPoint = collections.namedtuple(
    'IntroductionPoint', ['identity', 'service_key'])


def _der(block, field):
    if block is None:
        raise InvalidDescriptor('Missing {} block.'.format(field))

    match = RE_PEM.search(block)
    if match is None:
        raise InvalidDescriptor('Invalid {} block: {}'.format(field, block))

    try:
        return base64.b64decode(match.group(1).replace('\n', ''))
    except (binascii.Error, ValueError):
        raise InvalidDescriptor('Invalid base64 in {} block.'.format(field))


def introduction_points(text):
    """Extract introduction points from a v2 hidden service descriptor.

    Only unauthenticated descriptors are supported: encrypted
    introduction-points are rejected.

    :param text: the descriptor (str or bytes), as returned by a HSDir

    :returns: list of IntroductionPoint (base32 identity, DER service key)
    """
    if isinstance(text, str):
        text = text.encode('utf8')

    try:
        desc = HiddenServiceDescriptorV2(text, validate=False)
        intros = desc.introduction_points()
    except (ValueError, DecryptionFailure) as e:
        raise InvalidDescriptor('Unable to parse descriptor: {}'.format(e))

    if not intros:
        raise InvalidDescriptor('No introduction points listed.')

    points = []
    for intro in intros:
        if intro.identifier is None:
            raise InvalidDescriptor('Introduction point without identity.')
        points.append(IntroductionPoint(
            intro.identifier, _der(intro.service_key, 'service-key')))

    return points

"""
HTTP envelope of directory requests (dir-spec, rend-spec-v2 1.4 and 1.6).
"""

import base64

rendezvous_prefix = '/tor/rendezvous2/'
publish_path = rendezvous_prefix + 'publish'


class UpstreamHttpError(RuntimeError):
    """Directory answered with anything but '200'.

    The message is 'HTTPError: ' followed by the literal response, so that a
    front-end can forward the original status code and body.

    :var code: status code (int), or None if no status line was received
    :var str reason: reason phrase of the status line
    :var str body: response body (after the first blank line)
    :var str raw: the full response as received
    """

    def __init__(self, raw):
        super().__init__('HTTPError: {}'.format(raw))
        self.raw = raw
        self.code, self.reason, self.body = None, None, ''
        try:
            self.code, self.reason, self.body = parse(raw)
        except ValueError:
            pass


def query(descriptor_id):
    """Path of a descriptor fetch, descriptor_id as raw bytes or base32."""
    if isinstance(descriptor_id, bytes):
        descriptor_id = str(base64.b32encode(descriptor_id), 'ascii').lower()

    if any([c in descriptor_id for c in ' \r\n/']):
        raise ValueError('Invalid descriptor ID: {}'.format(descriptor_id))

    return rendezvous_prefix + descriptor_id


def parse(response):
    """Split a raw response into (code, reason, body).

    :param str response: full response, status line first

    :returns: a tuple (int-code, reason-phrase, body-or-empty-string)
    """
    head, _, content = response.partition('\r\n\r\n')
    status = head.split('\r\n', 1)[0]

    fields = status.split(' ', 2)
    if len(fields) < 2 or not fields[0].startswith('HTTP/'):
        raise ValueError('Invalid status line: {!r}'.format(status))

    try:
        code = int(fields[1])
    except ValueError:
        raise ValueError('Invalid status code: {!r}'.format(status))

    reason = fields[2] if len(fields) > 2 else ''
    return code, reason, content


def body(response):
    """Return the body of a '200' response, raise UpstreamHttpError if not.

    The body is whatever follows the first blank line, left unparsed.
    """
    try:
        code, _, content = parse(response)
    except ValueError:
        raise UpstreamHttpError(response)

    if code != 200:
        raise UpstreamHttpError(response)

    return content

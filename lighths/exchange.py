"""
Fetch and publish hidden service descriptors through one-hop directory
circuits.
"""

import logging

from . import circuit as _circuit
from . import constants, http, ring, stream
from . import onion as _onion


class DirectoryNotFound(LookupError):
    def __init__(self, fingerprint):
        super().__init__(
            'Could not find the requested HSDir {} in the consensus.'.format(
                fingerprint))


class DirectoryCircuitFailure(IOError):
    pass


def perform_request(link, relay, method, path, body=None,
        timeout=constants.wait_timeout):
    """Send one HTTP request to `relay` over a dedicated directory circuit.

    The expected transcript is:

           Onion Proxy (client)               HSDir (relay)

               /  [1] :-------- CREATE(_FAST) ------> [2]
       circuit |  [3] :--------- (extend) ----------> [4]
               \
               /  [5] :-------- RELAY_BEGIN_DIR -----> [6]
               |  [7] <-------- RELAY_CONNECTED -----: [6]
        stream |  [8] :--- GET/POST (RELAY_DATA) ----> [9]
               | [11] <------- response (DATA) ------: [10]
               | [11] <---------- RELAY_END ---------:
               \

    The circuit is torn down on every exit path.

    :param link: circuit factory (see circuit module)
    :param relay: target relay (see consensus.Relay)
    :param str method: 'GET' or 'POST'
    :param str path: request path
    :param str body: POST body
    :param timeout: maximum wait for stream opening and completion (seconds)

    :returns: the raw response (str), possibly empty or truncated on timeout
    """
    if method not in ['GET', 'POST']:
        raise ValueError('Unsupported method: {}'.format(method))

    circuit = link.create_circuit()
    try:
        circuit.create()
        circuit.extend(relay)

        channel = stream.Channel()
        dirstream = circuit.open_directory_stream(channel)

        opened = channel.wait_connected(timeout)
        if opened is None:
            raise _circuit.CircuitFailure(
                'Directory stream to {} did not open in {}s.'.format(
                    relay, timeout))
        if not opened:
            raise _circuit.CircuitFailure(
                'Directory stream to {} failed to open.'.format(relay))

        logging.debug('Exchange: {} {} to {}.'.format(method, path, relay))
        if method == 'GET':
            dirstream.send_http_get(path, constants.directory_host)
        else:
            dirstream.send_http_post(path, constants.directory_host, body)

        # (the remote side ends the stream once everything is sent)
        event = channel.wait_completed(timeout)
        if event is None:
            logging.warning(
                'Exchange: No answer from {} after {}s, reading anyway.'.format(
                    relay, timeout))

        if _circuit.destroyed(circuit):
            raise _circuit.CircuitFailure('Circuit destroyed.')

        data = dirstream.read()
    finally:
        circuit.destroy()

    if isinstance(data, bytes):
        data = str(data, 'utf8', 'replace')
    return data


def fetch(link, snapshot, onion, now=None):
    """Retrieve the descriptor of a hidden service from its HSDirs.

    Responsible directories are tried one at a time in ring order: the
    first three with the descriptor ID of replica 0, the last three with
    replica 1.

    :param link: circuit factory (see circuit module)
    :param snapshot: consensus snapshot (see consensus.Snapshot)
    :param str onion: onion address of the hidden service
    :param now: UNIX time used to compute descriptor IDs (default: now)

    :returns: the descriptor (str) or None if no directory provided it
    """
    directories = ring.responsible_directories(snapshot, onion, now)

    for idx, relay in enumerate(directories):
        replica = idx // constants.spread
        path = http.query(_onion.descriptor_id(onion, replica, now))

        logging.debug('Exchange: Trying directory server {}.'.format(relay))
        try:
            response = perform_request(link, relay, 'GET', path)
            return http.body(response)
        except _circuit.CircuitFailure as e:
            logging.error('Exchange: Descriptor fetch failed due to circuit'
                ' failure ({}), moving to next directory.'.format(e))
        except http.UpstreamHttpError as e:
            logging.info('Exchange: Directory {} answered {}, moving to next'
                ' directory.'.format(relay, e.code))

    logging.warning('Exchange: Descriptor for {} not found.'.format(onion))
    return None


def _request(link, snapshot, fingerprint, method, path, body=None):
    relay = snapshot.relay(fingerprint)
    if relay is None:
        logging.error('Exchange: Could not find the requested HSDir {}.'.format(
            fingerprint))
        raise DirectoryNotFound(fingerprint)

    try:
        response = perform_request(link, relay, method, path, body)
    except _circuit.CircuitFailure as e:
        raise DirectoryCircuitFailure(
            'Request to {} failed due to circuit failure ({}),'
            ' you should retry.'.format(relay, e))

    return http.body(response)


def request(link, snapshot, descriptor_id, fingerprint):
    """Fetch a descriptor by ID from one given HSDir.

    :param str descriptor_id: descriptor ID (base32) or raw 20 bytes
    :param str fingerprint: fingerprint of the HSDir to query

    :returns: the descriptor (str), raises UpstreamHttpError if not '200'
    """
    return _request(link, snapshot, fingerprint, 'GET', http.query(descriptor_id))


def publish(link, snapshot, descriptor, fingerprint):
    """Upload a descriptor to one given HSDir.

    :param str descriptor: full descriptor text
    :param str fingerprint: fingerprint of the HSDir

    :returns: the directory's answer body, raises UpstreamHttpError if not '200'
    """
    if not descriptor:
        raise ValueError('Refusing to publish an empty descriptor.')

    return _request(
        link, snapshot, fingerprint, 'POST', http.publish_path, descriptor)

import base64
import hashlib

import pytest

from lighths.circuit import CircuitFailure, State
from lighths.consensus import Relay, Snapshot

onion_address = 'duskgytldkxiuqc6'
now = 1500000000


def ok(content):
    if isinstance(content, str):
        content = content.encode('utf8')
    return (b'HTTP/1.0 200 OK\r\nContent-Length: '
        + str(len(content)).encode() + b'\r\n\r\n' + content)


not_found = b'HTTP/1.0 404 Not found\r\n\r\n'


def make_relay(idx, flags=('Fast', 'HSDir', 'Running'), onion_key=None):
    fingerprint = hashlib.sha1(str(idx).encode()).hexdigest().upper()
    if onion_key is None:
        onion_key = hashlib.sha256(fingerprint.encode()).digest() * 4
    return Relay(
        nickname='relay{}'.format(idx),
        fingerprint=fingerprint,
        address='10.0.0.{}'.format(idx),
        orport=9001,
        flags=flags,
        onion_key=onion_key)


class FakeStream:
    def __init__(self, circuit, listener):
        self.circuit = circuit
        self.listener = listener
        self.response = b''

    def _answer(self, request):
        self.circuit.link.requests.append(request)
        behaviour = self.circuit.behaviour
        if behaviour == 'silent':
            self.response = b'HTTP/1.0 200 OK\r\n\r\npartial'
            return
        if behaviour == 'destroy':
            self.circuit.state = State.DESTROYED
            self.listener.failure(self)
            return

        self.response = behaviour
        self.listener.data_arrived(self)
        self.listener.disconnected(self)

    def send_http_get(self, path, host):
        self._answer(('GET', path, host, None))

    def send_http_post(self, path, host, body):
        self._answer(('POST', path, host, body))

    def read(self):
        return self.response


class FakeCircuit:
    """One-hop circuit whose fate is decided by a behaviour:

    - bytes: the directory answers with this raw response
    - 'fail': extend raises CircuitFailure
    - 'refuse': the directory stream fails to open
    - 'silent': the directory never closes the stream
    - 'destroy': the circuit is destroyed after sending the request
    - 'unacked': wait_for_state raises CircuitFailure
    - 'ok': everything succeeds
    """

    def __init__(self, link, behaviour):
        self.link = link
        self.behaviour = behaviour
        self.state = State.BUILDING
        self.last_hop = None
        self.sent = []
        self.destroyed = 0

    def create(self):
        self.state = State.CREATED

    def extend(self, relay):
        self.link.extended.append(relay)
        if self.behaviour == 'fail':
            raise CircuitFailure('Unable to extend to {}.'.format(relay))
        self.last_hop = relay
        self.state = State.CREATED_AND_EXTENDED

    def open_directory_stream(self, listener):
        stream = FakeStream(self, listener)
        if self.behaviour == 'refuse':
            listener.failure(stream)
        else:
            listener.connected(stream)
        return stream

    def send(self, payload, command, early, stream_id):
        self.sent.append((payload, command, early, stream_id))

    def wait_for_state(self, state, extended=False):
        if self.behaviour == 'unacked':
            raise CircuitFailure('Circuit destroyed while waiting.')
        self.state = state

    def destroy(self):
        self.destroyed += 1
        self.state = State.DESTROYED


class FakeLink:
    """Hands out circuits following a script, one behaviour per circuit.

    Once the script is exhausted, directories answer '404'.
    """

    def __init__(self, script=()):
        self.script = list(script)
        self.circuits = []
        self.extended = []
        self.requests = []

    def create_circuit(self):
        behaviour = not_found
        if self.script:
            behaviour = self.script.pop(0)
        circuit = FakeCircuit(self, behaviour)
        self.circuits.append(circuit)
        return circuit


class FakeRendezvous(FakeCircuit):
    def __init__(self, relay, cookie, behaviour='ok'):
        super().__init__(None, behaviour)
        self.last_hop = relay
        self.cookie = cookie
        self.handshake = None
        self.waited = []

    def wait_for_state(self, state, extended=False):
        self.waited.append(state)
        super().wait_for_state(state, extended)


@pytest.fixture
def relays():
    return [make_relay(idx) for idx in range(1, 21)]


@pytest.fixture
def snapshot(relays):
    others = [make_relay(idx, flags=('Fast', 'Running'))
        for idx in range(21, 26)]
    return Snapshot(relays + others)


@pytest.fixture
def link():
    return FakeLink()


def _block(kind, data):
    encoded = str(base64.b64encode(data), 'ascii')
    lines = [encoded[i:i + 64] for i in range(0, len(encoded), 64)]
    return '\n'.join(['-----BEGIN {}-----'.format(kind)] + lines
        + ['-----END {}-----'.format(kind)])


def make_descriptor(intros, service_key=b'\x30' * 140):
    """Build a v2 descriptor listing (relay, service-key-der) intros."""
    nested = []
    for relay, key in intros:
        identity = base64.b32encode(bytes.fromhex(relay.fingerprint))
        nested += [
            'introduction-point {}'.format(str(identity, 'ascii').lower()),
            'ip-address {}'.format(relay.address),
            'onion-port {}'.format(relay.orport),
            'onion-key',
            _block('RSA PUBLIC KEY', relay.onion_key),
            'service-key',
            _block('RSA PUBLIC KEY', key)]
    nested = '\n'.join(nested) + '\n'

    return '\n'.join([
        'rendezvous-service-descriptor {}'.format('a' * 32),
        'version 2',
        'permanent-key',
        _block('RSA PUBLIC KEY', service_key),
        'secret-id-part {}'.format('b' * 32),
        'publication-time 2017-07-14 02:00:00',
        'protocol-versions 2,3',
        'introduction-points',
        _block('MESSAGE', nested.encode('utf8')),
        'signature',
        _block('SIGNATURE', b'\x00' * 128)]) + '\n'

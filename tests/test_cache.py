import base64
import io
import json
import os

import pytest

from lighths import cache, onion, ring
from lighths.__main__ import main
from lighths.consensus import Snapshot

from conftest import make_relay, onion_address, now


def _fields(valid_until=now + 3600):
    routers = []
    for idx in range(1, 11):
        relay = make_relay(idx)
        routers.append({
            'nickname': relay.nickname,
            'identity': str(base64.b64encode(
                bytes.fromhex(relay.fingerprint)), 'ascii').rstrip('='),
            'address': relay.address,
            'orport': relay.orport,
            'flags': list(relay.flags)})

    return {
        'flavor': 'unflavored',
        'headers': {'valid-until': {'stamp': valid_until}},
        'routers': routers}


def test_consensus_round_trip(tmpdir):
    fields = _fields()
    cache.consensus.put(fields, str(tmpdir))
    assert os.path.isdir(os.path.join(str(tmpdir), 'lighths-cache'))

    assert cache.consensus.get('unflavored', str(tmpdir), now) == fields

    with pytest.raises(ValueError):
        cache.consensus.get('unflavored', str(tmpdir), now + 7200)

    cache.purge(str(tmpdir))
    assert not os.path.isdir(os.path.join(str(tmpdir), 'lighths-cache'))


def test_snapshot_from_consensus():
    snapshot = Snapshot.from_consensus(_fields())
    assert len(snapshot) == 10
    assert make_relay(3).fingerprint in snapshot

    relay = snapshot.relay(make_relay(3).fingerprint)
    assert relay.address == '10.0.0.3'
    assert relay.onion_key is None
    assert list(snapshot) == sorted(snapshot)


def test_cli_descriptor_id():
    out = io.StringIO()
    assert main(['--time', str(now), 'descriptor-id', onion_address], out) == 0

    lines = out.getvalue().splitlines()
    assert len(lines) == 2
    for replica, line in enumerate(lines):
        expected = base64.b32encode(
            onion.descriptor_id(onion_address, replica, now))
        assert line == '{} {}'.format(
            replica, str(expected, 'ascii').lower())


def test_cli_hsdirs(tmpdir):
    path = os.path.join(str(tmpdir), 'consensus.json')
    with open(path, 'w') as f:
        json.dump(_fields(), f)

    out = io.StringIO()
    assert main(['--time', str(now), 'hsdirs', onion_address,
        '--consensus', path], out) == 0

    snapshot = Snapshot.from_consensus(_fields())
    expected = ring.responsible_directories(snapshot, onion_address, now)

    lines = out.getvalue().splitlines()
    assert len(lines) == 6
    assert [line.split()[1] for line in lines] == [
        relay.fingerprint for relay in expected]

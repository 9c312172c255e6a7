import hashlib

import pytest

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from lighths import constants, crypto


@pytest.fixture(scope='module')
def service_key():
    return rsa.generate_private_key(
        public_exponent=65537, key_size=1024, backend=default_backend())


def _der(private_key):
    return private_key.public_key().public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.PKCS1)


def test_load_service_key(service_key):
    der = _der(service_key)
    public_key = crypto.load_service_key(der)
    assert public_key.key_size == 1024
    assert crypto.key_hash(der) == hashlib.sha1(der).digest()


@pytest.mark.parametrize('size', [0, 1, 86, 87, 200])
def test_hybrid_encryption(service_key, size):
    message = bytes([i % 251 for i in range(size)])
    public_key = crypto.load_service_key(_der(service_key))

    ciphertext = crypto.hybrid_encrypt(message, public_key)
    if size <= constants.pk_enc_len - constants.pk_pad_len:
        assert len(ciphertext) == constants.pk_enc_len
    else:
        assert len(ciphertext) == size + constants.pk_pad_len + constants.key_len

    assert crypto.hybrid_decrypt(ciphertext, service_key) == message


def test_hybrid_decrypt_short(service_key):
    with pytest.raises(ValueError):
        crypto.hybrid_decrypt(b'\x00' * 64, service_key)


def test_diffie_hellman():
    x, gx = crypto.ephemeral()
    y, gy = crypto.ephemeral()
    assert len(gx) == constants.dh.width
    assert gx != gy

    secret = crypto.shared_secret(x, gy)
    assert len(secret) == constants.dh.width
    assert secret == crypto.shared_secret(y, gx)


@pytest.mark.parametrize('public', [
    b'\x00' * 128,
    b'\x00' * 127 + b'\x01',
    (constants.dh.p - 1).to_bytes(128, 'big'),
])
def test_diffie_hellman_invalid(public):
    x, _ = crypto.ephemeral()
    with pytest.raises(ValueError):
        crypto.shared_secret(x, public)


def test_kdf_tor():
    material = b'\x42' * 128
    keys = crypto.kdf_tor(material)

    expected = b''.join([hashlib.sha1(material + bytes([i])).digest()
        for i in range(5)])
    assert keys.key_hash == expected[:20]
    assert keys.forward_digest == expected[20:40]
    assert keys.backward_digest == expected[40:60]
    assert keys.forward_key == expected[60:76]
    assert keys.backward_key == expected[76:92]

"""
Cryptographic parts of the introduction handshake (tor-spec 0.3 and 5.1.3).
"""

import hashlib
import os

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import dh, padding, rsa
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.serialization import load_der_public_key

from . import constants


def load_service_key(der):
    """Load a DER-encoded (PKCS#1) RSA public key."""
    public_key = load_der_public_key(der, backend=default_backend())
    if not isinstance(public_key, rsa.RSAPublicKey):
        raise ValueError('Service key is not an RSA key.')
    return public_key


def key_hash(der):
    return hashlib.sha1(der).digest()


def _oaep():
    # Tor uses OAEP with SHA1 (and MGF1-SHA1), no label.
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA1()),
        algorithm=hashes.SHA1(),
        label=None)


def _aes_ctr(key):
    # Tor uses AES128-CTR with IV=0 as stream cipher
    nonce_size = algorithms.AES.block_size // 8
    zeroed_ctr = modes.CTR(b'\x00' * nonce_size)
    return Cipher(algorithms.AES(key), zeroed_ctr, default_backend())


def hybrid_encrypt(message, public_key):
    """Hybrid encryption of `message` with `public_key`.

    The expected layout is:

        len(M) <= PK_ENC_LEN - PK_PAD_LEN:

            PK_Encrypt(M)

        otherwise, with a fresh KEY_LEN-bytes key K:

            PK_Encrypt(K | M1) | AES-CTR(K, IV=0)(M2)

        where M1 is the first PK_ENC_LEN - PK_PAD_LEN - KEY_LEN bytes of M
        and M2 the remaining bytes.

    :param bytes message: plaintext
    :param public_key: RSA public key (see load_service_key)

    :returns: ciphertext (bytes)
    """
    enc_len = public_key.key_size // 8
    room = enc_len - constants.pk_pad_len
    if len(message) <= room:
        return public_key.encrypt(message, _oaep())

    key = os.urandom(constants.key_len)
    split = room - constants.key_len
    head, tail = message[:split], message[split:]

    encryptor = _aes_ctr(key).encryptor()
    return (public_key.encrypt(key + head, _oaep())
        + encryptor.update(tail) + encryptor.finalize())


def hybrid_decrypt(ciphertext, private_key):
    """Inverse of hybrid_encrypt (service side)."""
    enc_len = private_key.key_size // 8
    if len(ciphertext) < enc_len:
        raise ValueError('Ciphertext too short: {} < {}'.format(
            len(ciphertext), enc_len))

    head = private_key.decrypt(ciphertext[:enc_len], _oaep())
    if len(ciphertext) == enc_len:
        return head

    key, head = head[:constants.key_len], head[constants.key_len:]
    decryptor = _aes_ctr(key).decryptor()
    return (head
        + decryptor.update(ciphertext[enc_len:]) + decryptor.finalize())


def _dh_parameters():
    return dh.DHParameterNumbers(
        constants.dh.p, constants.dh.g).parameters(default_backend())


def ephemeral():
    """Generate an ephemeral Diffie-Hellman key pair (g^x mod p).

    :returns: a tuple (private-key, 128-bytes-public-value)
    """
    private_key = _dh_parameters().generate_private_key()
    public = private_key.public_key().public_numbers().y
    return private_key, public.to_bytes(constants.dh.width, 'big')


def shared_secret(private_key, public):
    """Compute g^xy from our private key and the peer's g^y."""
    y = int.from_bytes(public, 'big')
    if not 1 < y < constants.dh.p - 1:
        raise ValueError('Invalid DH public value.')

    numbers = private_key.parameters().parameter_numbers()
    peer = dh.DHPublicNumbers(y, numbers).public_key(default_backend())
    secret = private_key.exchange(peer)
    return secret.rjust(constants.dh.width, b'\x00')


class kdf_tor:
    """KDF-TOR (tor-spec 5.2.1) expansion of a shared secret.

        K = H(K0 | [00]) | H(K0 | [01]) | H(K0 | [02]) | ...

    split into KH, Df, Db, Kf and Kb.
    """

    def __init__(self, secret):
        h = constants.hash_len
        k = constants.key_len

        rounds = -(-(h * 3 + k * 2) // h)
        stream = b''.join([hashlib.sha1(secret + bytes([counter])).digest()
            for counter in range(rounds)])

        self.key_hash = stream[:h]
        self.forward_digest = stream[h:h * 2]
        self.backward_digest = stream[h * 2:h * 3]
        self.forward_key = stream[h * 3:h * 3 + k]
        self.backward_key = stream[h * 3 + k:h * 3 + k * 2]

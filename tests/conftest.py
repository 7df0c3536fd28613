"""
Shared fixtures: one RSA-2048 recipient key pair per session, and an
opener that plays the recipient's side (unwrap + AES-CBC decrypt).
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from cryptography.hazmat.primitives import hashes, padding as sym_padding
from cryptography.hazmat.primitives.asymmetric import rsa, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from hybrid_envelope import EnvelopeConfig, export_public_key


def _oaep():
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None
    )


@pytest.fixture(scope="session")
def private_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def public_key_b64(private_key):
    return export_public_key(private_key.public_key())


@pytest.fixture
def config():
    return EnvelopeConfig()


def unwrap(wrapped_key: bytes, private_key) -> bytes:
    return private_key.decrypt(wrapped_key, _oaep())


def aes_cbc_decrypt(key: bytes, iv: bytes, ciphertext: bytes) -> bytes:
    decryptor = Cipher(algorithms.AES(key), modes.CBC(iv)).decryptor()
    padded = decryptor.update(ciphertext) + decryptor.finalize()
    unpadder = sym_padding.PKCS7(128).unpadder()
    return unpadder.update(padded) + unpadder.finalize()


@pytest.fixture(scope="session")
def open_envelope(private_key):
    """Recipient side: Envelope -> plaintext bytes."""
    def _open(envelope):
        ciphertext, iv, wrapped_key = envelope.raw()
        return aes_cbc_decrypt(unwrap(wrapped_key, private_key), iv, ciphertext)
    return _open

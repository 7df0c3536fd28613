"""
Stage 1 — PUBLIC KEY IMPORT: base64 SPKI DER -> RSA-OAEP wrapping key
=====================================================================
Parses the recipient's public key as handed out by a key-distribution
service: a SubjectPublicKeyInfo structure, DER-encoded, then base64'd
(no PEM armour).

The result is a WrappingKey: an encrypt-only handle. It can wrap short
secrets with RSA-OAEP (MGF1-SHA-256, SHA-256) and nothing else. It never
exposes verify() or the underlying key object.

OAEP capacity for a k-byte modulus with SHA-256 is k - 2*32 - 2 bytes:
    2048-bit → 190 bytes
    3072-bit → 318 bytes
    4096-bit → 446 bytes
A 32-byte AES key always fits once the modulus passes the size policy.

Dependencies: cryptography >= 41.0
"""

import base64
import binascii
import logging

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa

from ..config import EnvelopeConfig, get_config
from ..errors import KeyImportError

logger = logging.getLogger(__name__)

HASH_SIZE = 32  # SHA-256 digest


def _oaep() -> padding.OAEP:
    return padding.OAEP(
        mgf=padding.MGF1(algorithm=hashes.SHA256()),
        algorithm=hashes.SHA256(),
        label=None
    )


class WrappingKey:
    """RSA public key scoped to OAEP-SHA256 encryption only."""

    __slots__ = ("_public_key",)

    def __init__(self, public_key: rsa.RSAPublicKey):
        if not isinstance(public_key, rsa.RSAPublicKey):
            raise KeyImportError("Public key is not an RSA key.")
        self._public_key = public_key

    @property
    def key_size(self) -> int:
        """Modulus size in bits."""
        return self._public_key.key_size

    @property
    def modulus_bytes(self) -> int:
        return (self._public_key.key_size + 7) // 8

    @property
    def max_wrap_size(self) -> int:
        """Largest secret (in bytes) that fits under OAEP-SHA256."""
        return self.modulus_bytes - 2 * HASH_SIZE - 2

    def wrap(self, secret: bytes) -> bytes:
        """RSA-OAEP encrypt a short secret. Output is modulus_bytes long."""
        if len(secret) > self.max_wrap_size:
            raise ValueError(
                f"Secret of {len(secret)} bytes exceeds OAEP capacity "
                f"({self.max_wrap_size} bytes) for RSA-{self.key_size}."
            )
        return self._public_key.encrypt(bytes(secret), _oaep())

    def __repr__(self):
        return f"WrappingKey(RSA-{self.key_size}, OAEP-SHA256, encrypt-only)"


def import_public_key(encoded_key: str,
                      config: EnvelopeConfig = None) -> WrappingKey:
    """Parse a base64 SubjectPublicKeyInfo DER blob into a WrappingKey.

    Args:
        encoded_key: base64 text (str or ASCII bytes); surrounding
            whitespace and line breaks are ignored.
        config: size policy; defaults to the process configuration.

    Raises:
        KeyImportError: malformed base64 or DER, a non-RSA key, or a
            modulus below ``config.min_rsa_key_size``.
    """
    config = config or get_config()
    if isinstance(encoded_key, str):
        encoded_key = encoded_key.encode("ascii", errors="replace")
    if not isinstance(encoded_key, (bytes, bytearray)):
        raise KeyImportError(
            f"Encoded public key must be str or bytes, "
            f"got {type(encoded_key).__name__}."
        )
    compact = b"".join(bytes(encoded_key).split())
    if not compact:
        raise KeyImportError("Encoded public key is empty.")

    try:
        der = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as err:
        logger.warning("Public key import failed: invalid base64 (%d chars)",
                       len(compact))
        raise KeyImportError("Public key is not valid base64.") from err

    try:
        public_key = serialization.load_der_public_key(der)
    except (ValueError, TypeError, UnsupportedAlgorithm) as err:
        logger.warning("Public key import failed: invalid SPKI DER (%d bytes)",
                       len(der))
        raise KeyImportError(
            "Public key is not a valid SubjectPublicKeyInfo structure."
        ) from err

    if not isinstance(public_key, rsa.RSAPublicKey):
        raise KeyImportError(
            f"Expected an RSA public key, got {type(public_key).__name__}."
        )
    if public_key.key_size < config.min_rsa_key_size:
        raise KeyImportError(
            f"RSA-{public_key.key_size} is below the minimum "
            f"of {config.min_rsa_key_size} bits."
        )

    key = WrappingKey(public_key)
    logger.debug("Imported %r", key)
    return key


def export_public_key(public_key: rsa.RSAPublicKey) -> str:
    """Encode an RSA public key the way import_public_key() expects it."""
    der = public_key.public_bytes(
        serialization.Encoding.DER,
        serialization.PublicFormat.SubjectPublicKeyInfo
    )
    return base64.b64encode(der).decode("ascii")

"""
Stage 3 — SYMMETRIC: AES-256-CBC payload encryption
=====================================================
Bulk data never touches RSA. It is encrypted under the session key in
CBC mode with a fresh random IV.

Key:     256 bits (32 bytes) — the SessionKey from stage 2
IV:      128 bits (16 bytes) — random per call, sent in the clear
Padding: PKCS#7, always applied (an exact multiple of 16 gains a full block)

Ciphertext length = (len(plaintext) // 16 + 1) * 16
    b""       → 16 bytes
    b"hello"  → 16 bytes
    16 bytes  → 32 bytes

Two calls with the same plaintext and key produce different output,
because the IV differs.

Dependencies: cryptography >= 41.0
"""

import os
import logging
from typing import Tuple, Union

from ..config import EnvelopeConfig, get_config
from ..errors import EncryptionError
from .stage2_session_key import BLOCK_SIZE, SessionKey

logger = logging.getLogger(__name__)

Plaintext = Union[str, bytes, bytearray, memoryview]


def normalize_plaintext(plaintext: Plaintext, text_encoding: str = "utf-8") -> bytes:
    """
    Turn text or binary input into the byte sequence that gets encrypted.

    str is encoded under text_encoding ("utf-8" or "latin-1").
    Raises EncryptionError for other types or unencodable text.
    """
    if isinstance(plaintext, str):
        try:
            return plaintext.encode(text_encoding)
        except UnicodeEncodeError as err:
            raise EncryptionError(
                f"Text contains characters outside {text_encoding} "
                f"(position {err.start})."
            ) from err
    if isinstance(plaintext, (bytes, bytearray, memoryview)):
        return bytes(plaintext)
    raise EncryptionError(
        f"Plaintext must be str or bytes-like, got {type(plaintext).__name__}."
    )


def encrypt_payload(plaintext: Plaintext, key: SessionKey,
                    config: EnvelopeConfig = None) -> Tuple[bytes, bytes]:
    """
    Encrypt plaintext under the session key.
    Returns: (ciphertext, iv)
    """
    config = config or get_config()
    data = normalize_plaintext(plaintext, config.text_encoding)
    try:
        iv = os.urandom(BLOCK_SIZE)
        ciphertext = key.encrypt_with(data, iv)
    except (ValueError, TypeError, OSError) as err:
        logger.warning("Payload encryption failed: %s", type(err).__name__)
        raise EncryptionError("AES-CBC encryption failed.") from err
    logger.debug("Encrypted payload: %d → %d bytes", len(data), len(ciphertext))
    return ciphertext, iv

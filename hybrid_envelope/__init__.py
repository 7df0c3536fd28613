"""
hybrid_envelope — RSA-OAEP + AES-256-CBC envelope encryption
=============================================================
Client-side sealing of text or file payloads for the holder of an RSA
private key. Bulk data is encrypted with a fresh AES-256 session key;
only that key is RSA-wrapped.

Stages:
    1  PUBLIC KEY   — base64 SPKI DER → encrypt-only RSA-OAEP key
    2  SESSION KEY  — fresh AES-256 key, exportable exactly once
    3  SYMMETRIC    — AES-256-CBC + PKCS#7, random 16-byte IV
    4  KEY WRAP     — RSA-OAEP-SHA256 over the raw session key
    5  ENVELOPE     — independent base64 of ciphertext, iv, wrapped key

Usage:
    envelope = seal(b"payload", server_public_key_b64)
    envelope = await encrypt_data("text", server_public_key_b64)

License: Apache 2.0
"""

__version__  = "1.0.0"

from .config                      import EnvelopeConfig, get_config
from .errors                      import (EnvelopeError, KeyImportError,
                                          KeyGenerationError, EncryptionError,
                                          KeyWrapError, ConfigError)
from .stages.stage1_public_key    import WrappingKey, import_public_key, export_public_key
from .stages.stage2_session_key   import SessionKey, generate_session_key
from .stages.stage3_aes_cbc       import encrypt_payload, normalize_plaintext
from .stages.stage4_rsa_wrap      import wrap_session_key
from .stages.stage5_envelope      import Envelope, assemble_envelope
from .sealer                      import seal, encrypt_data, EnvelopeSealer

__all__ = [
    "EnvelopeConfig",
    "get_config",
    "EnvelopeError",
    "KeyImportError",
    "KeyGenerationError",
    "EncryptionError",
    "KeyWrapError",
    "ConfigError",
    "WrappingKey",
    "import_public_key",
    "export_public_key",
    "SessionKey",
    "generate_session_key",
    "encrypt_payload",
    "normalize_plaintext",
    "wrap_session_key",
    "Envelope",
    "assemble_envelope",
    "seal",
    "encrypt_data",
    "EnvelopeSealer",
]

"""
Stage 5 — ENVELOPE: text-safe packaging for transport
======================================================
No cryptography happens here. The three byte strings produced by the
earlier stages are base64-encoded independently so any text transport
(JSON bodies, form fields) can carry them.

    ciphertext   — AES-CBC output (multiple of 16 bytes)
    iv           — 16 bytes → always 24 base64 chars
    wrapped_key  — RSA-OAEP output (modulus size)

Transport shapes:
    as_dict()            {"ciphertext", "iv", "wrappedKey"}
    to_json()            as_dict() as compact JSON bytes
    as_text_payload()    {"message", "key", "iv"}   (short text bodies)
    as_upload_fields()   {"file": (name, raw bytes), "iv", "key"}  (multipart)

Dependencies: orjson
"""

import base64
import binascii
from dataclasses import dataclass
from typing import Any, Mapping, Tuple

import orjson

from ..errors import EnvelopeError

_FIELDS = (("ciphertext", "ciphertext"), ("iv", "iv"), ("wrapped_key", "wrappedKey"))


def _b64(name: str, value: bytes) -> str:
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise EnvelopeError(
            f"Envelope field '{name}' must be bytes-like, got {type(value).__name__}."
        )
    return base64.b64encode(bytes(value)).decode("ascii")


@dataclass(frozen=True)
class Envelope:
    """Base64 triple produced from one session key."""

    ciphertext: str
    iv: str
    wrapped_key: str

    def raw(self) -> Tuple[bytes, bytes, bytes]:
        """Decode back to (ciphertext, iv, wrapped_key) bytes."""
        return (base64.b64decode(self.ciphertext),
                base64.b64decode(self.iv),
                base64.b64decode(self.wrapped_key))

    def as_dict(self) -> dict:
        return {"ciphertext": self.ciphertext,
                "iv": self.iv,
                "wrappedKey": self.wrapped_key}

    def to_json(self) -> bytes:
        return orjson.dumps(self.as_dict(), option=orjson.OPT_SORT_KEYS)

    def as_text_payload(self) -> dict:
        """JSON body for a short text message."""
        return {"message": self.ciphertext,
                "key": self.wrapped_key,
                "iv": self.iv}

    def as_upload_fields(self, filename: str) -> dict:
        """
        Multipart form fields for an encrypted file.
        The file part carries raw ciphertext; iv and key stay base64.
        """
        return {"file": (filename, base64.b64decode(self.ciphertext)),
                "iv": self.iv,
                "key": self.wrapped_key}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Envelope":
        """Parse the as_dict() shape. Every field must be valid base64."""
        values = {}
        for attr, wire in _FIELDS:
            value = data.get(wire)
            if not isinstance(value, str):
                raise EnvelopeError(f"Envelope field '{wire}' is missing or not a string.")
            try:
                base64.b64decode(value, validate=True)
            except (binascii.Error, ValueError) as err:
                raise EnvelopeError(f"Envelope field '{wire}' is not valid base64.") from err
            values[attr] = value
        return cls(**values)

    @classmethod
    def from_json(cls, data: bytes) -> "Envelope":
        try:
            parsed = orjson.loads(data)
        except orjson.JSONDecodeError as err:
            raise EnvelopeError("Envelope JSON is malformed.") from err
        if not isinstance(parsed, dict):
            raise EnvelopeError("Envelope JSON must be an object.")
        return cls.from_dict(parsed)


def assemble_envelope(ciphertext: bytes, iv: bytes, wrapped_key: bytes) -> Envelope:
    """Base64-encode each field independently into an Envelope."""
    return Envelope(
        ciphertext=_b64("ciphertext", ciphertext),
        iv=_b64("iv", iv),
        wrapped_key=_b64("wrapped_key", wrapped_key),
    )

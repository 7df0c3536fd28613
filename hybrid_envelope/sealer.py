"""
Envelope Sealer — RSA-OAEP + AES-256-CBC hybrid encryption
===========================================================
RSA can only encrypt a few hundred bytes (190 for a 2048-bit key with
OAEP-SHA256). The envelope pattern gets around that: encrypt the DATA
with a fresh AES-256 key, then encrypt only THAT key with RSA. The
holder of the RSA private key unwraps the AES key and decrypts the data.

Pipeline (one fresh session key per call):

    import public key ─┐
                       ├─► encrypt payload ─┐
    generate AES key ──┤                    ├─► assemble Envelope
                       └─► wrap AES key ────┘

Both pairs of independent steps run concurrently in encrypt_data();
seal() runs the same steps inline. Any failure aborts the whole call
with the failing stage's exception. No partial Envelope is ever built,
and the session key is destroyed on every path.
"""

import asyncio
import logging
from typing import Union

from .config import EnvelopeConfig, get_config
from .errors import KeyImportError
from .stages.stage1_public_key import WrappingKey, import_public_key
from .stages.stage2_session_key import SessionKey, generate_session_key
from .stages.stage3_aes_cbc import Plaintext, encrypt_payload
from .stages.stage4_rsa_wrap import wrap_session_key
from .stages.stage5_envelope import Envelope, assemble_envelope

logger = logging.getLogger(__name__)

PublicKeyInput = Union[str, bytes, bytearray, WrappingKey]


def _resolve_public_key(public_key: PublicKeyInput,
                        config: EnvelopeConfig) -> WrappingKey:
    if isinstance(public_key, WrappingKey):
        return public_key
    return import_public_key(public_key, config)


def _raise_first(results: tuple) -> None:
    for result in results:
        if isinstance(result, BaseException):
            raise result


def _destroy_generated(future: asyncio.Future) -> None:
    for result in future.result():
        if isinstance(result, SessionKey):
            result.destroy()


def seal(plaintext: Plaintext, public_key: PublicKeyInput,
         config: EnvelopeConfig = None) -> Envelope:
    """
    Encrypt arbitrary-length plaintext for the holder of public_key.
    public_key is a base64 SPKI DER string or an imported WrappingKey.
    """
    config = config or get_config()
    wrapping_key = _resolve_public_key(public_key, config)
    key = generate_session_key()
    try:
        ciphertext, iv = encrypt_payload(plaintext, key, config)
        wrapped_key = wrap_session_key(key, wrapping_key)
    finally:
        key.destroy()
    return assemble_envelope(ciphertext, iv, wrapped_key)


async def encrypt_data(plaintext: Plaintext, public_key: PublicKeyInput,
                       config: EnvelopeConfig = None) -> Envelope:
    """
    Async twin of seal(). Provider calls run in worker threads; import and
    key generation overlap, then payload encryption and key wrap overlap.
    """
    config = config or get_config()

    if isinstance(public_key, WrappingKey):
        importing = asyncio.sleep(0, result=public_key)
    else:
        importing = asyncio.to_thread(import_public_key, public_key, config)
    pending = asyncio.gather(
        importing,
        asyncio.to_thread(generate_session_key),
        return_exceptions=True,
    )
    try:
        wrapping_key, key = await asyncio.shield(pending)
    except asyncio.CancelledError:
        pending.add_done_callback(_destroy_generated)
        raise
    if isinstance(key, SessionKey) and not isinstance(wrapping_key, WrappingKey):
        key.destroy()
    _raise_first((wrapping_key, key))

    pending = asyncio.gather(
        asyncio.to_thread(encrypt_payload, plaintext, key, config),
        asyncio.to_thread(wrap_session_key, key, wrapping_key),
        return_exceptions=True,
    )
    try:
        results = await asyncio.shield(pending)
    except asyncio.CancelledError:
        # worker threads keep running; destroy the key once they finish
        pending.add_done_callback(lambda _: key.destroy())
        raise
    key.destroy()
    _raise_first(results)
    (ciphertext, iv), wrapped_key = results
    return assemble_envelope(ciphertext, iv, wrapped_key)


class EnvelopeSealer:
    """
    Seals payloads for one recipient.
    Only the current recipient key is held, keyed by its encoded form, so
    re-sending the same key skips the import.
    """

    def __init__(self, public_key: Union[str, bytes, bytearray] = None,
                 config: EnvelopeConfig = None):
        self._config  = config or get_config()
        self._encoded = None
        self._key     = None
        if public_key is not None:
            self.update_public_key(public_key)

    @property
    def config(self) -> EnvelopeConfig:
        return self._config

    @property
    def public_key(self) -> WrappingKey:
        if self._encoded is None:
            raise KeyImportError("No recipient public key loaded.")
        return self._key

    def update_public_key(self, public_key: Union[str, bytes, bytearray]) -> WrappingKey:
        """Switch recipient. Raises KeyImportError and keeps the old key on failure."""
        if isinstance(public_key, (bytes, bytearray)):
            public_key = bytes(public_key).decode("ascii", errors="replace")
        if not isinstance(public_key, str):
            raise KeyImportError(
                f"Encoded public key must be str or bytes, "
                f"got {type(public_key).__name__}."
            )
        encoded = "".join(public_key.split())
        if encoded != self._encoded:
            self._key = import_public_key(encoded, self._config)
            self._encoded = encoded
            logger.info("Recipient key loaded: %r", self._key)
        return self._key

    def seal(self, plaintext: Plaintext) -> Envelope:
        return seal(plaintext, self.public_key, self._config)

    async def encrypt_data(self, plaintext: Plaintext) -> Envelope:
        return await encrypt_data(plaintext, self.public_key, self._config)

    def __repr__(self):
        return f"EnvelopeSealer({self._key!r})"

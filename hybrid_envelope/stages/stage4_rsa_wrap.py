"""
Stage 4 — KEY WRAP: RSA-OAEP-SHA256 over the raw session key
==============================================================
The only RSA operation in the pipeline. The 32 raw bytes of the session
key are exported once, encrypted under the recipient's public key, and
the exported buffer is zeroed before returning.

Output length equals the modulus size, regardless of payload size:
    RSA-2048 → 256 bytes
    RSA-3072 → 384 bytes
    RSA-4096 → 512 bytes

Dependencies: cryptography >= 41.0
"""

import logging

from ..errors import KeyWrapError
from .stage1_public_key import WrappingKey
from .stage2_session_key import SessionKey

logger = logging.getLogger(__name__)


def wrap_session_key(key: SessionKey, public_key: WrappingKey) -> bytes:
    """Export the session key once and wrap it with RSA-OAEP."""
    raw = key.export_raw()
    try:
        wrapped = public_key.wrap(raw)
    except (ValueError, TypeError) as err:
        logger.warning("Session key wrap failed under %r", public_key)
        raise KeyWrapError("RSA-OAEP wrap of the session key failed.") from err
    finally:
        for i in range(len(raw)):
            raw[i] = 0
    logger.debug("Wrapped session key: %d bytes under RSA-%d",
                 len(wrapped), public_key.key_size)
    return wrapped

"""
Error taxonomy
==============
Every stage of the envelope pipeline fails with its own exception type,
so a caller can tell which step broke without parsing messages.

    EnvelopeError
     ├── KeyImportError       recipient public key could not be used
     ├── KeyGenerationError   session key could not be generated
     ├── EncryptionError      payload could not be encrypted
     ├── KeyWrapError         session key could not be wrapped
     └── ConfigError          invalid configuration value

The underlying provider exception is always chained (``__cause__``).
"""


class EnvelopeError(Exception):
    """Base error for envelope encryption. Also raised by assembly."""


class KeyImportError(EnvelopeError):
    """Raised when the encoded public key is malformed, not RSA, or too small."""


class KeyGenerationError(EnvelopeError):
    """Raised when the random source fails to produce a session key."""


class EncryptionError(EnvelopeError):
    """Raised when AES-CBC encryption of the payload fails."""


class KeyWrapError(EnvelopeError):
    """Raised when the session key cannot be exported or RSA-wrapped."""


class ConfigError(EnvelopeError, ValueError):
    """Raised on invalid configuration."""

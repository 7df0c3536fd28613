"""
Envelope Configuration — validated settings for the sealing pipeline.

Reads optional overrides from environment variables:
    ENVELOPE_TEXT_ENCODING    = utf-8 | latin-1
    ENVELOPE_MIN_RSA_KEY_SIZE = <integer, bits>

Text encoding policy:
    "utf-8"   — str plaintext is encoded as UTF-8 (default).
    "latin-1" — one byte per character, matching clients that map each
                character code straight to a byte. Characters above
                U+00FF are rejected instead of being truncated.
"""
import os
import logging
from functools import lru_cache

from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import ConfigError

logger = logging.getLogger(__name__)

TEXT_ENCODINGS = ("utf-8", "latin-1")


class EnvelopeConfig(BaseModel):
    """Validated envelope configuration."""

    text_encoding: str = Field(default="utf-8")
    min_rsa_key_size: int = Field(default=2048, ge=1024, le=16384)

    model_config = {"frozen": True}

    @field_validator("text_encoding")
    @classmethod
    def validate_text_encoding(cls, v: str) -> str:
        """Normalize and validate the text encoding policy."""
        v = v.strip().lower().replace("_", "-")
        if v in ("utf8",):
            v = "utf-8"
        if v in ("latin1", "iso-8859-1"):
            v = "latin-1"
        if v not in TEXT_ENCODINGS:
            raise ValueError(f"Unsupported text encoding: {v}")
        return v

    @classmethod
    def from_env(cls) -> "EnvelopeConfig":
        """Create EnvelopeConfig from environment variables.

        Unset variables fall back to the field defaults.

        Raises:
            ConfigError: If a variable holds an invalid value.
        """
        values = {}
        encoding = os.environ.get("ENVELOPE_TEXT_ENCODING")
        if encoding:
            values["text_encoding"] = encoding
        min_size = os.environ.get("ENVELOPE_MIN_RSA_KEY_SIZE")
        if min_size:
            values["min_rsa_key_size"] = min_size
        try:
            config = cls(**values)
        except ValidationError as err:
            raise ConfigError(f"Invalid envelope configuration: {err}") from err
        logger.debug(
            "Envelope config: text_encoding=%s min_rsa_key_size=%d",
            config.text_encoding, config.min_rsa_key_size,
        )
        return config


@lru_cache(maxsize=1)
def get_config() -> EnvelopeConfig:
    """Return the process-wide default configuration (read once from env)."""
    return EnvelopeConfig.from_env()

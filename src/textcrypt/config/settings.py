"""
Configuration Management

This module holds the defaults the Builder presets are populated from:
- Environment-based overrides (prefix ``TEXTCRYPT_``, nested with ``__``)
- Optional ``.env`` file loading
- Validation of iteration counts, key lengths and charsets
- Logging defaults for the structlog-backed log sink
"""

import codecs
from enum import Enum
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..models.parameters import TextEncoding


class LogLevel(str, Enum):
    """Logging levels"""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EncryptionSettings(BaseSettings):
    """Defaults used by the default and low-iteration presets"""

    model_config = SettingsConfigDict(
        env_prefix="TEXTCRYPT_ENCRYPTION__",
        case_sensitive=False,
        extra="ignore",
    )

    # Algorithm names
    key_algorithm: str = Field(default="AES", description="Symmetric cipher family")
    cipher_transformation: str = Field(
        default="AES/CBC/PKCS5Padding",
        description="Cipher specification as ALGORITHM/MODE/PADDING"
    )
    key_derivation_algorithm: str = Field(
        default="PBKDF2WithHmacSHA1",
        description="Password-based key derivation function"
    )
    digest_algorithm: str = Field(default="SHA1", description="Hash used inside key derivation")
    secure_random_algorithm: str = Field(default="SHA1PRNG", description="Randomness source name")

    # Key derivation settings
    key_length_bits: int = Field(default=256, description="Derived key length in bits")
    iteration_count: int = Field(
        default=65536,
        ge=1,
        description="PBKDF2 iteration count for the default preset"
    )
    low_iteration_count: int = Field(
        default=1,
        ge=1,
        description="PBKDF2 iteration count for the low-iteration preset (insecure, fast)"
    )

    # Text handling
    charset: str = Field(default="utf-8", description="Codec for str <-> bytes conversion")
    text_encoding: TextEncoding = Field(default=TextEncoding.BASE64, description="Ciphertext text encoding")

    @field_validator("key_length_bits")
    @classmethod
    def validate_key_length(cls, v):
        """Key lengths must be positive whole bytes"""
        if v <= 0 or v % 8:
            raise ValueError("key_length_bits must be a positive multiple of 8")
        return v

    @field_validator("charset")
    @classmethod
    def validate_charset(cls, v):
        """Ensure the charset names a known codec"""
        try:
            codecs.lookup(v)
        except LookupError:
            raise ValueError(f"Unknown charset: {v}")
        return v


class Settings(BaseSettings):
    """Main package settings"""

    model_config = SettingsConfigDict(
        env_prefix="TEXTCRYPT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    # Logging configuration
    log_enabled: bool = Field(
        default=False,
        description="Attach the structlog sink to preset builders (off means no-op logging)"
    )
    log_level: LogLevel = Field(default=LogLevel.INFO, description="Logging level")

    encryption: EncryptionSettings = Field(default_factory=EncryptionSettings)

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v):
        """Accept log levels in any case"""
        if isinstance(v, str):
            return v.upper()
        return v


# Global settings instance
settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get settings singleton"""
    global settings
    if settings is None:
        settings = Settings()
    return settings


def reload_settings() -> Settings:
    """Reload settings from the environment"""
    global settings
    settings = Settings()
    return settings

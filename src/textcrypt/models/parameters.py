"""
Parameter models for textcrypt

ParameterSet holds every cryptographic knob an Engine is built from. It is
a frozen Pydantic model: once a Builder has validated and produced one, it
cannot be changed.
"""

import codecs
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator


class TextEncoding(str, Enum):
    """Printable encodings for ciphertext bytes"""
    BASE64 = "base64"
    BASE64_MIME = "base64_mime"
    BASE64_URLSAFE = "base64_urlsafe"
    BASE64_URLSAFE_NO_PADDING = "base64_urlsafe_no_padding"
    BASE32 = "base32"
    HEX = "hex"


class ParameterSet(BaseModel):
    """Validated, immutable set of encryption parameters."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Algorithm names
    key_algorithm: str = Field(min_length=1, description="Symmetric cipher family, e.g. AES")
    cipher_transformation: str = Field(
        min_length=1,
        description="Cipher specification as ALGORITHM/MODE/PADDING"
    )
    key_derivation_algorithm: str = Field(min_length=1, description="Password-based KDF name")
    digest_algorithm: str = Field(min_length=1, description="Hash used as the KDF pseudorandom function")
    secure_random_algorithm: str = Field(min_length=1, description="Randomness source for generated values")

    # Secret material
    key: SecretStr = Field(description="Password text supplied by the caller")
    salt: bytes = Field(min_length=1, description="Derivation salt")
    iv: bytes = Field(min_length=1, description="Initialization vector, one cipher block long")

    # Sizes and costs
    key_length_bits: int = Field(gt=0, description="Derived key length in bits")
    iteration_count: int = Field(ge=1, description="KDF iteration count")

    # Text handling
    charset: str = Field(default="utf-8", description="Codec for str <-> bytes conversion")
    text_encoding: TextEncoding = Field(default=TextEncoding.BASE64, description="Ciphertext text encoding")

    @field_validator("key_length_bits")
    @classmethod
    def validate_key_length(cls, v):
        """Key lengths are whole bytes"""
        if v % 8:
            raise ValueError("key length must be a multiple of 8 bits")
        return v

    @field_validator("charset")
    @classmethod
    def validate_charset(cls, v):
        """Normalize the charset to the codec's canonical name"""
        try:
            return codecs.lookup(v).name
        except LookupError:
            raise ValueError(f"unknown charset: {v}")

    @property
    def key_length_bytes(self) -> int:
        return self.key_length_bits // 8

    def describe(self) -> dict:
        """Non-secret summary suitable for log events"""
        return {
            "key_algorithm": self.key_algorithm,
            "cipher_transformation": self.cipher_transformation,
            "key_derivation_algorithm": self.key_derivation_algorithm,
            "digest_algorithm": self.digest_algorithm,
            "key_length_bits": self.key_length_bits,
            "iteration_count": self.iteration_count,
            "charset": self.charset,
            "text_encoding": self.text_encoding.value,
        }

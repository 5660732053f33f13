"""
Exception hierarchy for textcrypt.

Configuration problems are raised while a Builder is assembled or built;
the remaining errors are raised by Engine operations.
"""

from typing import Any, Dict, Optional


class TextCryptError(Exception):
    """Base exception for all textcrypt failures"""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            extras = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({extras})"
        return self.message


class ConfigurationError(TextCryptError):
    """Raised when parameters cannot be assembled into an Engine"""


class AlgorithmUnavailableError(ConfigurationError):
    """A requested algorithm name is unknown or unsupported by the backend"""


class InvalidParameterError(ConfigurationError):
    """A parameter, or a combination of parameters, is invalid"""


class DecodingError(TextCryptError):
    """Ciphertext text is not valid under the configured text encoding"""


class EncryptionError(TextCryptError):
    """The encryption pipeline failed"""


class DecryptionError(TextCryptError):
    """The decryption pipeline failed (bad padding, wrong key, corrupted data)"""

"""
textcrypt

Password-based symmetric encryption of text: PBKDF2 key derivation, block
cipher encryption and printable ciphertext, configured through a validating
builder and usable synchronously, from worker threads or from asyncio.
"""

__version__ = "0.1.0"
__description__ = "Password-based text encryption with a validating builder"

from .core import (
    TextCryptError,
    ConfigurationError,
    AlgorithmUnavailableError,
    InvalidParameterError,
    DecodingError,
    EncryptionError,
    DecryptionError,
    Engine,
    Builder,
    default_builder,
    low_iteration_builder,
    get_default,
    get_low_iteration,
    Callback,
    FunctionCallback,
    AsyncRunner
)
from .models import ParameterSet, TextEncoding
from .utils import LogSink, NullLogSink, StructlogSink, CallbackLogSink, configure_logging

__all__ = [
    "TextCryptError",
    "ConfigurationError",
    "AlgorithmUnavailableError",
    "InvalidParameterError",
    "DecodingError",
    "EncryptionError",
    "DecryptionError",
    "Engine",
    "Builder",
    "default_builder",
    "low_iteration_builder",
    "get_default",
    "get_low_iteration",
    "Callback",
    "FunctionCallback",
    "AsyncRunner",
    "ParameterSet",
    "TextEncoding",
    "LogSink",
    "NullLogSink",
    "StructlogSink",
    "CallbackLogSink",
    "configure_logging",
]

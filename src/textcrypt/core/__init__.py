"""
Encryption Core Package

Builder, Engine and asynchronous runner for password-based text encryption.
"""

from .errors import (
    TextCryptError,
    ConfigurationError,
    AlgorithmUnavailableError,
    InvalidParameterError,
    DecodingError,
    EncryptionError,
    DecryptionError
)

from .algorithms import CipherSuite

from .runner import (
    Callback,
    FunctionCallback,
    AsyncRunner
)

from .engine import Engine

from .builder import (
    Builder,
    default_builder,
    low_iteration_builder,
    get_default,
    get_low_iteration
)

__all__ = [
    # Errors
    "TextCryptError",
    "ConfigurationError",
    "AlgorithmUnavailableError",
    "InvalidParameterError",
    "DecodingError",
    "EncryptionError",
    "DecryptionError",

    # Engine and construction
    "CipherSuite",
    "Engine",
    "Builder",
    "default_builder",
    "low_iteration_builder",
    "get_default",
    "get_low_iteration",

    # Async
    "Callback",
    "FunctionCallback",
    "AsyncRunner"
]

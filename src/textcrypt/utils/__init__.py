"""
Utilities Package

Shared helpers used by the encryption engine:
- Printable text encodings for ciphertext bytes
- Log sinks the engine reports to (no-op, structlog, callables)
"""

from .log_sink import (
    LogSink,
    NullLogSink,
    StructlogSink,
    CallbackLogSink,
    configure_logging
)

from .text_encoding import (
    encode_bytes,
    decode_text
)

__all__ = [
    # Log sinks
    "LogSink",
    "NullLogSink",
    "StructlogSink",
    "CallbackLogSink",
    "configure_logging",

    # Text encodings
    "encode_bytes",
    "decode_text"
]

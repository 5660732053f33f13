"""
Encryption Engine

An Engine owns one validated ParameterSet and the CipherSuite resolved from
it. Every operation is independent: the key is derived from the password
and salt on each call, nothing is carried between calls, and the same
Engine can be used from many threads at once.

Pipeline:
    encrypt: text --charset--> bytes --pad--> cipher --> text encoding
    decrypt: text encoding --> cipher^-1 --unpad--> bytes --charset--> text

Key derivation (PBKDF2) dominates the cost of both directions; use the
async surface when blocking the calling thread is not acceptable.
"""

import asyncio
from concurrent.futures import Executor, Future
from typing import Optional

from cryptography.exceptions import UnsupportedAlgorithm

from ..models.parameters import ParameterSet
from ..utils.log_sink import LogSink, NullLogSink
from ..utils.text_encoding import decode_text, encode_bytes
from .algorithms import CipherSuite
from .errors import DecryptionError, EncryptionError, TextCryptError
from .runner import AsyncRunner, Callback


class Engine:
    """
    Immutable password-based text encryption engine.

    Create instances through Builder (or get_default / get_low_iteration);
    the constructor performs no validation of its own.
    """

    __slots__ = ("_parameters", "_suite", "_log_sink", "_executor")

    def __init__(
        self,
        parameters: ParameterSet,
        suite: CipherSuite,
        log_sink: Optional[LogSink] = None,
        executor: Optional[Executor] = None,
    ):
        object.__setattr__(self, "_parameters", parameters)
        object.__setattr__(self, "_suite", suite)
        object.__setattr__(self, "_log_sink", log_sink or NullLogSink())
        object.__setattr__(self, "_executor", executor)

    def __setattr__(self, name, value):
        raise AttributeError("Engine instances are immutable")

    def __repr__(self) -> str:
        p = self._parameters
        return (
            f"Engine(transformation={p.cipher_transformation!r}, "
            f"key_length_bits={p.key_length_bits}, iteration_count={p.iteration_count})"
        )

    @property
    def parameters(self) -> ParameterSet:
        return self._parameters

    @property
    def log_sink(self) -> LogSink:
        return self._log_sink

    @property
    def executor(self) -> Optional[Executor]:
        return self._executor

    # Key derivation

    def derive_key(self) -> bytes:
        """Derive the symmetric key from the password and salt (deterministic)"""
        p = self._parameters
        password = p.key.get_secret_value().encode(p.charset)
        kdf = self._suite.kdf(salt=p.salt, length=p.key_length_bytes, iterations=p.iteration_count)
        return kdf.derive(password)

    # Synchronous surface

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypt text and return it in the configured text encoding.

        Raises:
            EncryptionError: charset conversion, padding or cipher failure
        """
        p = self._parameters

        if not isinstance(plaintext, str):
            raise EncryptionError("Plaintext must be text", details={"type": type(plaintext).__name__})

        try:
            data = plaintext.encode(p.charset)
        except UnicodeEncodeError as e:
            raise EncryptionError(
                f"Plaintext cannot be encoded with {p.charset}",
                details={"charset": p.charset, "position": e.start}
            ) from e

        try:
            key = self.derive_key()
            encryptor = self._suite.cipher(key, p.iv).encryptor()
            ciphertext = encryptor.update(self._suite.pad(data)) + encryptor.finalize()
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise EncryptionError(
                "Encryption failed",
                details={"transformation": p.cipher_transformation, "error": str(e)}
            ) from e

        return encode_bytes(ciphertext, p.text_encoding)

    def decrypt(self, ciphertext: str) -> str:
        """
        Decrypt text produced by encrypt() with the same parameters.

        Raises:
            DecodingError: the text is not valid in the configured text encoding
            DecryptionError: bad padding, wrong key/salt/IV, corrupted data,
                or plaintext bytes the charset cannot decode
        """
        p = self._parameters

        # Decoding problems surface before any cryptographic work
        data = decode_text(ciphertext, p.text_encoding)

        if self._suite.mode.requires_alignment and len(data) % self._suite.block_size_bytes:
            raise DecryptionError(
                "Ciphertext length is not a multiple of the block size",
                details={"length": len(data), "block_size": self._suite.block_size_bytes}
            )

        try:
            key = self.derive_key()
            decryptor = self._suite.cipher(key, p.iv).decryptor()
            padded = decryptor.update(data) + decryptor.finalize()
            plaintext = self._suite.unpad(padded)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise DecryptionError(
                "Decryption failed - wrong key, salt or IV, or corrupted ciphertext",
                details={"transformation": p.cipher_transformation, "error": str(e)}
            ) from e

        try:
            return plaintext.decode(p.charset)
        except UnicodeDecodeError as e:
            raise DecryptionError(
                f"Decrypted bytes are not valid {p.charset}",
                details={"charset": p.charset, "position": e.start}
            ) from e

    def encrypt_or_none(self, plaintext: str) -> Optional[str]:
        """encrypt(), returning None on failure and logging the error to the sink"""
        try:
            return self.encrypt(plaintext)
        except TextCryptError as e:
            self._log_sink.log_error("Encryption failed", e)
            return None

    def decrypt_or_none(self, ciphertext: str) -> Optional[str]:
        """decrypt(), returning None on failure and logging the error to the sink"""
        try:
            return self.decrypt(ciphertext)
        except TextCryptError as e:
            self._log_sink.log_error("Decryption failed", e)
            return None

    # Asynchronous surface

    def encrypt_async(self, plaintext: str, callback: Callback) -> Future:
        """Encrypt on a worker thread; the callback receives the outcome"""
        return AsyncRunner(self, callback).submit_encrypt(plaintext)

    def decrypt_async(self, ciphertext: str, callback: Callback) -> Future:
        """Decrypt on a worker thread; the callback receives the outcome"""
        return AsyncRunner(self, callback).submit_decrypt(ciphertext)

    async def aencrypt(self, plaintext: str) -> str:
        """Coroutine form of encrypt(), run in the engine's executor"""
        return await asyncio.get_running_loop().run_in_executor(self._executor, self.encrypt, plaintext)

    async def adecrypt(self, ciphertext: str) -> str:
        """Coroutine form of decrypt(), run in the engine's executor"""
        return await asyncio.get_running_loop().run_in_executor(self._executor, self.decrypt, ciphertext)

"""
Engine Builder

Collects encryption parameters through fluent setters, validates each one
as it is set, and cross-validates the whole set in build(). build() either
returns a complete, immutable Engine or raises ConfigurationError; a
partially configured Engine is never produced.

Two presets exist:
- default: AES/CBC/PKCS5Padding, PBKDF2WithHmacSHA1, 256-bit key, 65536
  iterations, UTF-8, standard base64
- low iteration: the same with a single PBKDF2 iteration. Fast, but offers
  almost no brute-force resistance; meant for tests and development only.
"""

import codecs
from concurrent.futures import Executor
from typing import Optional, Union

from cryptography.exceptions import UnsupportedAlgorithm
from pydantic import ValidationError

from ..config.settings import EncryptionSettings, get_settings
from ..models.parameters import ParameterSet, TextEncoding
from ..utils.log_sink import LogSink, NullLogSink, StructlogSink
from .algorithms import (
    CipherSuite,
    normalize_name,
    parse_key_derivation,
    parse_transformation,
    resolve_cipher_family,
    resolve_digest,
    resolve_secure_random,
)
from .engine import Engine
from .errors import AlgorithmUnavailableError, ConfigurationError, InvalidParameterError

DEFAULT_SALT_LENGTH = 16


def _require_name(value, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise InvalidParameterError(f"{field} must be a non-empty string", details={"field": field})
    return value.strip()


def _require_positive_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidParameterError(f"{field} must be an integer", details={"field": field})
    if value < 1:
        raise InvalidParameterError(f"{field} must be at least 1", details={"field": field, "value": value})
    return value


class Builder:
    """
    Fluent, single-threaded builder for Engine instances.

    Example:
        >>> engine = (
        ...     Builder.default("password", "salt", bytes(16))
        ...     .set_iteration_count(10000)
        ...     .build()
        ... )
    """

    def __init__(self):
        self._key_algorithm: Optional[str] = None
        self._cipher_transformation: Optional[str] = None
        self._key_derivation_algorithm: Optional[str] = None
        self._digest_algorithm: Optional[str] = None
        self._secure_random_algorithm: Optional[str] = None
        self._key: Optional[str] = None
        self._salt: Optional[Union[str, bytes]] = None
        self._iv: Optional[bytes] = None
        self._key_length_bits: Optional[int] = None
        self._iteration_count: Optional[int] = None
        self._charset: str = "utf-8"
        self._text_encoding: TextEncoding = TextEncoding.BASE64
        self._log_sink: LogSink = NullLogSink()
        self._executor: Optional[Executor] = None

    # Presets

    @classmethod
    def default(
        cls,
        key: str,
        salt: Union[str, bytes],
        iv: bytes,
        encryption_settings: Optional[EncryptionSettings] = None
    ) -> "Builder":
        """Builder populated with the secure defaults"""
        settings = get_settings()
        defaults = encryption_settings or settings.encryption

        builder = (
            cls()
            .set_key_algorithm(defaults.key_algorithm)
            .set_cipher_transformation(defaults.cipher_transformation)
            .set_key_derivation_algorithm(defaults.key_derivation_algorithm)
            .set_digest_algorithm(defaults.digest_algorithm)
            .set_secure_random_algorithm(defaults.secure_random_algorithm)
            .set_key_length(defaults.key_length_bits)
            .set_iteration_count(defaults.iteration_count)
            .set_charset(defaults.charset)
            .set_text_encoding(defaults.text_encoding)
            .set_key(key)
            .set_salt(salt)
            .set_iv(iv)
        )

        if settings.log_enabled:
            builder.enable_default_log()

        return builder

    @classmethod
    def low_iteration(
        cls,
        key: str,
        salt: Union[str, bytes],
        iv: bytes,
        encryption_settings: Optional[EncryptionSettings] = None
    ) -> "Builder":
        """
        Default builder with a single PBKDF2 iteration.

        Insecure: derivation becomes almost free for an attacker too. Use only
        where speed matters more than secrecy, such as tests.
        """
        defaults = encryption_settings or get_settings().encryption
        return cls.default(key, salt, iv, defaults).set_iteration_count(defaults.low_iteration_count)

    # Algorithm names

    def set_key_algorithm(self, name: str) -> "Builder":
        self._key_algorithm = _require_name(name, "key_algorithm")
        return self

    def set_cipher_transformation(self, transformation: str) -> "Builder":
        self._cipher_transformation = _require_name(transformation, "cipher_transformation")
        return self

    def set_key_derivation_algorithm(self, name: str) -> "Builder":
        self._key_derivation_algorithm = _require_name(name, "key_derivation_algorithm")
        return self

    def set_digest_algorithm(self, name: str) -> "Builder":
        self._digest_algorithm = _require_name(name, "digest_algorithm")
        return self

    def set_secure_random_algorithm(self, name: str) -> "Builder":
        self._secure_random_algorithm = _require_name(name, "secure_random_algorithm")
        return self

    # Secret material

    def set_key(self, key: str) -> "Builder":
        if not isinstance(key, str):
            raise InvalidParameterError("key must be a string", details={"field": "key"})
        self._key = key
        return self

    def set_salt(self, salt: Union[str, bytes]) -> "Builder":
        """Set the salt; text is encoded with the charset when the Engine is built"""
        if isinstance(salt, (bytes, bytearray)):
            salt = bytes(salt)
        elif not isinstance(salt, str):
            raise InvalidParameterError("salt must be str or bytes", details={"field": "salt"})
        if not salt:
            raise InvalidParameterError("salt must not be empty", details={"field": "salt"})
        self._salt = salt
        return self

    def set_iv(self, iv: bytes) -> "Builder":
        if not isinstance(iv, (bytes, bytearray)):
            raise InvalidParameterError("iv must be bytes", details={"field": "iv"})
        if not iv:
            raise InvalidParameterError("iv must not be empty", details={"field": "iv"})
        self._iv = bytes(iv)
        return self

    def generate_salt(self, length: int = DEFAULT_SALT_LENGTH) -> "Builder":
        """Fill the salt from the configured secure random source"""
        length = _require_positive_int(length, "salt length")
        self._salt = self._random_source()(length)
        return self

    def generate_iv(self) -> "Builder":
        """Fill the IV with one block of output from the secure random source"""
        if self._cipher_transformation is None:
            raise InvalidParameterError("Set a cipher transformation before generating an IV")
        family, _, _ = parse_transformation(self._cipher_transformation)
        self._iv = self._random_source()(family.block_size_bytes)
        return self

    def _random_source(self):
        if self._secure_random_algorithm is None:
            raise InvalidParameterError("Set a secure random algorithm before generating values")
        return resolve_secure_random(self._secure_random_algorithm)

    # Sizes and costs

    def set_key_length(self, bits: int) -> "Builder":
        bits = _require_positive_int(bits, "key_length_bits")
        if bits % 8:
            raise InvalidParameterError(
                "key_length_bits must be a multiple of 8",
                details={"field": "key_length_bits", "value": bits}
            )
        self._key_length_bits = bits
        return self

    def set_iteration_count(self, count: int) -> "Builder":
        self._iteration_count = _require_positive_int(count, "iteration_count")
        return self

    # Text handling

    def set_charset(self, charset: str) -> "Builder":
        charset = _require_name(charset, "charset")
        try:
            self._charset = codecs.lookup(charset).name
        except LookupError as e:
            raise InvalidParameterError(f"Unknown charset: {charset}", details={"field": "charset"}) from e
        return self

    def set_text_encoding(self, encoding: Union[TextEncoding, str]) -> "Builder":
        try:
            self._text_encoding = TextEncoding(encoding)
        except ValueError as e:
            raise InvalidParameterError(
                f"Unknown text encoding: {encoding}",
                details={"field": "text_encoding", "available": [m.value for m in TextEncoding]}
            ) from e
        return self

    # Collaborators

    def set_log_sink(self, sink: LogSink) -> "Builder":
        if not isinstance(sink, LogSink):
            raise InvalidParameterError("log sink must provide log() and log_error()")
        self._log_sink = sink
        return self

    def enable_default_log(self) -> "Builder":
        """Send engine events to structlog"""
        self._log_sink = StructlogSink()
        return self

    def disable_log(self) -> "Builder":
        self._log_sink = NullLogSink()
        return self

    def set_executor(self, executor: Optional[Executor]) -> "Builder":
        """Executor for async operations; None runs each one on its own thread"""
        self._executor = executor
        return self

    # Build

    def build(self) -> Engine:
        """Validate everything and produce an immutable Engine"""
        missing = [
            name for name, value in (
                ("key_algorithm", self._key_algorithm),
                ("cipher_transformation", self._cipher_transformation),
                ("key_derivation_algorithm", self._key_derivation_algorithm),
                ("digest_algorithm", self._digest_algorithm),
                ("secure_random_algorithm", self._secure_random_algorithm),
                ("key", self._key),
                ("salt", self._salt),
                ("iv", self._iv),
                ("key_length_bits", self._key_length_bits),
                ("iteration_count", self._iteration_count),
            )
            if value is None
        ]
        if missing:
            raise InvalidParameterError("Missing required parameters", details={"missing": missing})

        try:
            suite = self._resolve_suite()
            parameters = ParameterSet(
                key_algorithm=self._key_algorithm,
                cipher_transformation=self._cipher_transformation,
                key_derivation_algorithm=self._key_derivation_algorithm,
                digest_algorithm=self._digest_algorithm,
                secure_random_algorithm=self._secure_random_algorithm,
                key=self._key,
                salt=self._encoded_salt(),
                iv=self._iv,
                key_length_bits=self._key_length_bits,
                iteration_count=self._iteration_count,
                charset=self._charset,
                text_encoding=self._text_encoding,
            )
            self._validate_combination(suite, parameters)
            self._probe_backend(suite, parameters)
        except ConfigurationError as e:
            self._log_sink.log_error("Engine configuration rejected", e)
            raise
        except ValidationError as e:
            error = InvalidParameterError(
                "Invalid parameter set",
                details={"errors": [err["msg"] for err in e.errors()]}
            )
            self._log_sink.log_error("Engine configuration rejected", error)
            raise error from e

        engine = Engine(parameters, suite, log_sink=self._log_sink, executor=self._executor)
        summary = parameters.describe()
        transformation = summary.pop("cipher_transformation")
        self._log_sink.log(
            f"Engine built with {transformation} ("
            + ", ".join(f"{name}={value}" for name, value in summary.items())
            + ")"
        )
        return engine

    def _encoded_salt(self) -> bytes:
        if isinstance(self._salt, bytes):
            return self._salt
        try:
            return self._salt.encode(self._charset)
        except UnicodeEncodeError as e:
            raise InvalidParameterError(
                f"Salt cannot be encoded with {self._charset}",
                details={"field": "salt"}
            ) from e

    def _resolve_suite(self) -> CipherSuite:
        family, mode, padding = parse_transformation(self._cipher_transformation)
        key_family = resolve_cipher_family(self._key_algorithm)
        if key_family is not family:
            raise InvalidParameterError(
                "Key algorithm does not match the cipher transformation",
                details={
                    "key_algorithm": self._key_algorithm,
                    "cipher_transformation": self._cipher_transformation,
                }
            )

        digest = resolve_digest(self._digest_algorithm)
        embedded = parse_key_derivation(self._key_derivation_algorithm)
        if embedded is not None and embedded != normalize_name(self._digest_algorithm):
            raise InvalidParameterError(
                "Key derivation algorithm and digest algorithm disagree",
                details={
                    "key_derivation_algorithm": self._key_derivation_algorithm,
                    "digest_algorithm": self._digest_algorithm,
                }
            )

        # Only validated here; generate_salt/generate_iv draw from it before build
        resolve_secure_random(self._secure_random_algorithm)

        return CipherSuite(family=family, mode=mode, padding=padding, digest=digest)

    @staticmethod
    def _validate_combination(suite: CipherSuite, parameters: ParameterSet) -> None:
        try:
            parameters.key.get_secret_value().encode(parameters.charset)
        except UnicodeEncodeError as e:
            raise InvalidParameterError(
                f"Key cannot be encoded with {parameters.charset}",
                details={"field": "key"}
            ) from e

        if parameters.key_length_bits not in suite.family.key_sizes:
            raise InvalidParameterError(
                f"{suite.family.name} does not support {parameters.key_length_bits}-bit keys",
                details={"supported": sorted(suite.family.key_sizes)}
            )

        if len(parameters.iv) != suite.block_size_bytes:
            raise InvalidParameterError(
                f"IV must be {suite.block_size_bytes} bytes for {suite.family.name}",
                details={"iv_length": len(parameters.iv)}
            )

    @staticmethod
    def _probe_backend(suite: CipherSuite, parameters: ParameterSet) -> None:
        """Instantiate the cipher once so backend gaps surface at build time"""
        try:
            suite.cipher(bytes(parameters.key_length_bytes), parameters.iv).encryptor()
            suite.digest()
        except UnsupportedAlgorithm as e:
            raise AlgorithmUnavailableError(
                f"Backend does not support {parameters.cipher_transformation}",
                details={"error": str(e)}
            ) from e
        except ValueError as e:
            raise InvalidParameterError(
                "Invalid parameter combination",
                details={"error": str(e)}
            ) from e


def default_builder(key: str, salt: Union[str, bytes], iv: bytes) -> Builder:
    return Builder.default(key, salt, iv)


def low_iteration_builder(key: str, salt: Union[str, bytes], iv: bytes) -> Builder:
    return Builder.low_iteration(key, salt, iv)


def get_default(key: str, salt: Union[str, bytes], iv: bytes) -> Engine:
    """Engine with the secure defaults"""
    return Builder.default(key, salt, iv).build()


def get_low_iteration(key: str, salt: Union[str, bytes], iv: bytes) -> Engine:
    """Engine with a single PBKDF2 iteration (fast, insecure)"""
    return Builder.low_iteration(key, salt, iv).build()

"""
Algorithm name resolution

Builders accept algorithms by name ("AES", "AES/CBC/PKCS5Padding",
"PBKDF2WithHmacSHA1", "SHA-256", "SHA1PRNG", ...). This module maps those
names onto primitives from the ``cryptography`` package once, so an Engine
only ever works with resolved factories.

Names are matched case-insensitively, ignoring "-" and "_".
"""

import secrets
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Optional, Tuple, Type

from cryptography.hazmat.decrepit.ciphers import algorithms as decrepit_algorithms
from cryptography.hazmat.decrepit.ciphers import modes as decrepit_modes
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, CipherAlgorithm, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import AlgorithmUnavailableError, InvalidParameterError

PBKDF2 = "PBKDF2"
_PBKDF2_HMAC_PREFIX = "PBKDF2WITHHMAC"


@dataclass(frozen=True)
class CipherFamily:
    """A block cipher and the key sizes it accepts"""
    name: str
    factory: Type[CipherAlgorithm]
    block_size_bytes: int
    key_sizes: FrozenSet[int]


@dataclass(frozen=True)
class CipherMode:
    """A mode of operation; block modes need block-aligned input"""
    name: str
    factory: Callable[[bytes], modes.Mode]
    requires_alignment: bool


_CIPHER_FAMILIES: Dict[str, CipherFamily] = {
    "AES": CipherFamily("AES", algorithms.AES, 16, frozenset({128, 192, 256})),
    "CAMELLIA": CipherFamily("Camellia", decrepit_algorithms.Camellia, 16, frozenset({128, 192, 256})),
}

_CIPHER_MODES: Dict[str, CipherMode] = {
    "CBC": CipherMode("CBC", modes.CBC, True),
    "CFB": CipherMode("CFB", decrepit_modes.CFB, False),
    "CFB8": CipherMode("CFB8", decrepit_modes.CFB8, False),
    "OFB": CipherMode("OFB", decrepit_modes.OFB, False),
    "CTR": CipherMode("CTR", modes.CTR, False),
}

# None means no padding
_PADDINGS: Dict[str, Optional[type]] = {
    "PKCS5PADDING": padding.PKCS7,
    "PKCS7PADDING": padding.PKCS7,
    "ANSIX923PADDING": padding.ANSIX923,
    "NOPADDING": None,
}

_DIGESTS: Dict[str, Type[hashes.HashAlgorithm]] = {
    "SHA1": hashes.SHA1,
    "SHA224": hashes.SHA224,
    "SHA256": hashes.SHA256,
    "SHA384": hashes.SHA384,
    "SHA512": hashes.SHA512,
    "SHA512224": hashes.SHA512_224,
    "SHA512256": hashes.SHA512_256,
    "SHA3224": hashes.SHA3_224,
    "SHA3256": hashes.SHA3_256,
    "SHA3384": hashes.SHA3_384,
    "SHA3512": hashes.SHA3_512,
}

# Every supported source is backed by the operating system CSPRNG.
_SECURE_RANDOM_SOURCES: Dict[str, Callable[[int], bytes]] = {
    name: secrets.token_bytes
    for name in (
        "SHA1PRNG",
        "NATIVEPRNG",
        "NATIVEPRNGBLOCKING",
        "NATIVEPRNGNONBLOCKING",
        "DRBG",
        "WINDOWSPRNG",
        "SECURERANDOM",
        "URANDOM",
    )
}


def normalize_name(name: str) -> str:
    """Canonical lookup form of an algorithm name"""
    return name.upper().replace("-", "").replace("_", "").strip()


def resolve_cipher_family(name: str) -> CipherFamily:
    family = _CIPHER_FAMILIES.get(normalize_name(name))
    if family is None:
        raise AlgorithmUnavailableError(
            f"Cipher algorithm not available: {name}",
            details={"available": sorted(f.name for f in _CIPHER_FAMILIES.values())}
        )
    return family


def resolve_digest(name: str) -> Type[hashes.HashAlgorithm]:
    digest = _DIGESTS.get(normalize_name(name))
    if digest is None:
        raise AlgorithmUnavailableError(f"Digest algorithm not available: {name}")
    return digest


def resolve_secure_random(name: str) -> Callable[[int], bytes]:
    source = _SECURE_RANDOM_SOURCES.get(normalize_name(name))
    if source is None:
        raise AlgorithmUnavailableError(f"Secure random algorithm not available: {name}")
    return source


def parse_key_derivation(name: str) -> Optional[str]:
    """
    Validate a KDF name and return the digest it embeds, if any.

    "PBKDF2" leaves the digest to the digest algorithm setting;
    "PBKDF2WithHmacSHA256" pins it to SHA256.
    """
    normalized = normalize_name(name)
    if normalized == PBKDF2:
        return None
    if normalized.startswith(_PBKDF2_HMAC_PREFIX):
        embedded = normalized[len(_PBKDF2_HMAC_PREFIX):]
        if embedded in _DIGESTS:
            return embedded
    raise AlgorithmUnavailableError(f"Key derivation algorithm not available: {name}")


def parse_transformation(transformation: str) -> Tuple[CipherFamily, CipherMode, Optional[type]]:
    """Split ALGORITHM/MODE/PADDING and resolve each part"""
    parts = [part.strip() for part in transformation.split("/")]
    if len(parts) != 3 or not all(parts):
        raise InvalidParameterError(
            "Cipher transformation must have the form ALGORITHM/MODE/PADDING",
            details={"transformation": transformation}
        )

    family = resolve_cipher_family(parts[0])

    mode = _CIPHER_MODES.get(normalize_name(parts[1]))
    if mode is None:
        raise AlgorithmUnavailableError(
            f"Cipher mode not available: {parts[1]}",
            details={"available": sorted(_CIPHER_MODES)}
        )

    padding_key = normalize_name(parts[2])
    if padding_key not in _PADDINGS:
        raise AlgorithmUnavailableError(
            f"Padding scheme not available: {parts[2]}",
            details={"available": sorted(_PADDINGS)}
        )

    return family, mode, _PADDINGS[padding_key]


@dataclass(frozen=True)
class CipherSuite:
    """
    Resolved cipher and derivation machinery for one parameter set.

    Built once by the Builder; the Engine calls it for every operation.
    """
    family: CipherFamily
    mode: CipherMode
    padding: Optional[type]
    digest: Type[hashes.HashAlgorithm]

    @property
    def block_size_bytes(self) -> int:
        return self.family.block_size_bytes

    def kdf(self, salt: bytes, length: int, iterations: int) -> PBKDF2HMAC:
        # PBKDF2HMAC instances are single use
        return PBKDF2HMAC(
            algorithm=self.digest(),
            length=length,
            salt=salt,
            iterations=iterations,
        )

    def cipher(self, key: bytes, iv: bytes) -> Cipher:
        return Cipher(self.family.factory(key), self.mode.factory(iv))

    def pad(self, data: bytes) -> bytes:
        if self.padding is None:
            return data
        padder = self.padding(self.block_size_bytes * 8).padder()
        return padder.update(data) + padder.finalize()

    def unpad(self, data: bytes) -> bytes:
        if self.padding is None:
            return data
        unpadder = self.padding(self.block_size_bytes * 8).unpadder()
        return unpadder.update(data) + unpadder.finalize()

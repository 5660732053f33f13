"""
Unit tests for the encryption Engine

Covers the encrypt/decrypt pipeline, determinism, tamper detection, the
error taxonomy, the or-none surface and the coroutine surface.
"""

import base64
import os
import subprocess
import sys
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from pydantic import ValidationError

from textcrypt import (
    Builder,
    DecodingError,
    DecryptionError,
    EncryptionError,
    TextEncoding,
)

TEST_KEY = "SomeKey"
TEST_SALT = "SomeSalt"
TEST_IV = bytes(16)

SAMPLE_TEXTS = [
    "hello",
    "",
    "This is a text to be encrypt, it can be any string that you want",
    "mor€Z€cr€tKYss ünïcødé 漢字 🚀",
    "exactly sixteen!",
    "x" * 1000,
]


def _flip(ciphertext: str, position: int) -> str:
    data = bytearray(base64.b64decode(ciphertext))
    data[position] ^= 0x01
    return base64.b64encode(bytes(data)).decode("ascii")


class TestRoundTrip:
    """decrypt(encrypt(t)) == t"""

    @pytest.mark.parametrize("text", SAMPLE_TEXTS)
    def test_round_trip_default_parameters(self, engine, text):
        ciphertext = engine.encrypt(text)

        assert ciphertext != text
        assert engine.decrypt(ciphertext) == text

    @pytest.mark.parametrize("encoding", list(TextEncoding))
    def test_round_trip_every_text_encoding(self, fast_builder, encoding):
        engine = fast_builder.set_text_encoding(encoding).build()
        text = SAMPLE_TEXTS[2]

        assert engine.decrypt(engine.encrypt(text)) == text

    @pytest.mark.parametrize("transformation", [
        "AES/CBC/PKCS5Padding",
        "AES/CBC/PKCS7Padding",
        "AES/CBC/ANSIX923Padding",
        "AES/CTR/NoPadding",
        "AES/CFB/PKCS5Padding",
        "AES/CFB8/NoPadding",
        "AES/OFB/NoPadding",
    ])
    def test_round_trip_transformations(self, fast_builder, transformation):
        engine = fast_builder.set_cipher_transformation(transformation).build()

        for text in SAMPLE_TEXTS:
            assert engine.decrypt(engine.encrypt(text)) == text

    @pytest.mark.parametrize("mode", ["CBC", "CFB", "CFB8", "OFB", "CTR"])
    def test_round_trip_camellia(self, fast_builder, mode):
        engine = (
            fast_builder
            .set_key_algorithm("Camellia")
            .set_cipher_transformation(f"Camellia/{mode}/PKCS5Padding")
            .build()
        )
        aes = Builder.low_iteration(TEST_KEY, TEST_SALT, TEST_IV).build()

        assert engine.decrypt(engine.encrypt(SAMPLE_TEXTS[3])) == SAMPLE_TEXTS[3]
        assert engine.encrypt("hello") != aes.encrypt("hello")

    @pytest.mark.parametrize("bits", [128, 192, 256])
    def test_round_trip_key_lengths(self, fast_builder, bits):
        engine = fast_builder.set_key_length(bits).build()

        assert len(engine.derive_key()) == bits // 8
        assert engine.decrypt(engine.encrypt("hello")) == "hello"

    def test_round_trip_with_other_charset(self, fast_builder):
        engine = fast_builder.set_charset("utf-16").build()
        text = "ünïcødé 漢字"

        assert engine.decrypt(engine.encrypt(text)) == text

    def test_ciphertext_is_printable_text(self, engine):
        ciphertext = engine.encrypt(SAMPLE_TEXTS[3])

        assert isinstance(ciphertext, str)
        assert ciphertext.isascii()
        assert ciphertext.isprintable()


class TestDeterminism:
    """Derivation and encryption depend only on the parameters"""

    def test_matches_reference_pipeline(self, engine):
        kdf = PBKDF2HMAC(algorithm=hashes.SHA1(), length=32, salt=TEST_SALT.encode(), iterations=1)
        key = kdf.derive(TEST_KEY.encode())
        padder = padding.PKCS7(128).padder()
        padded = padder.update(b"hello") + padder.finalize()
        encryptor = Cipher(algorithms.AES(key), modes.CBC(TEST_IV)).encryptor()
        expected = base64.b64encode(encryptor.update(padded) + encryptor.finalize()).decode("ascii")

        assert engine.derive_key() == key
        assert engine.encrypt("hello") == expected

    def test_identical_parameters_give_identical_ciphertext(self):
        first = Builder.low_iteration(TEST_KEY, TEST_SALT, TEST_IV).build()
        second = Builder.low_iteration(TEST_KEY, TEST_SALT, TEST_IV).build()

        assert first.derive_key() == second.derive_key()
        assert first.encrypt("hello") == second.encrypt("hello")
        assert second.decrypt(first.encrypt("hello")) == "hello"

    def test_repeated_calls_are_independent(self, engine):
        assert engine.encrypt("hello") == engine.encrypt("hello")

    @pytest.mark.slow
    def test_iteration_count_participates_in_derivation(self):
        weak = Builder.default(TEST_KEY, TEST_SALT, TEST_IV).set_iteration_count(1).build()
        strong = Builder.default(TEST_KEY, TEST_SALT, TEST_IV).set_iteration_count(65536).build()

        assert weak.derive_key() != strong.derive_key()
        assert weak.encrypt("hello") != strong.encrypt("hello")

    def test_salt_and_iv_change_ciphertext(self, engine):
        other_salt = Builder.low_iteration(TEST_KEY, "OtherSalt", TEST_IV).build()
        other_iv = Builder.low_iteration(TEST_KEY, TEST_SALT, bytes(range(16))).build()

        assert other_salt.encrypt("hello") != engine.encrypt("hello")
        assert other_iv.encrypt("hello") != engine.encrypt("hello")

    def test_concurrent_use_of_one_engine(self, engine):
        expected = engine.encrypt("shared engine")

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda _: engine.encrypt("shared engine"), range(32)))
            plaintexts = list(pool.map(engine.decrypt, results))

        assert results == [expected] * 32
        assert plaintexts == ["shared engine"] * 32


class TestTamperSensitivity:
    """Modified ciphertext never decrypts silently"""

    def test_single_block_flips_are_rejected(self, engine):
        ciphertext = engine.encrypt("hello")

        for position in range(16):
            with pytest.raises(DecryptionError):
                engine.decrypt(_flip(ciphertext, position))

    def test_multi_block_flips_are_rejected(self, engine):
        ciphertext = engine.encrypt("two blocks of plaintext!")

        for position in range(len(base64.b64decode(ciphertext))):
            with pytest.raises(DecryptionError):
                engine.decrypt(_flip(ciphertext, position))

    def test_wrong_key_is_rejected(self, engine):
        ciphertext = engine.encrypt("hello")
        other = Builder.low_iteration("WrongKey", TEST_SALT, TEST_IV).build()

        with pytest.raises(DecryptionError):
            other.decrypt(ciphertext)

    def test_truncated_ciphertext_is_rejected(self, engine):
        data = base64.b64decode(engine.encrypt("hello"))
        truncated = base64.b64encode(data[:10]).decode("ascii")

        with pytest.raises(DecryptionError) as exc_info:
            engine.decrypt(truncated)

        assert "block size" in str(exc_info.value)


class TestErrors:
    """Failures map onto the error taxonomy"""

    @pytest.mark.parametrize("bad_text", ["not base64!!", "abc", "ünïcødé"])
    def test_invalid_encoding_raises_decoding_error(self, engine, bad_text):
        with pytest.raises(DecodingError) as exc_info:
            engine.decrypt(bad_text)

        assert not isinstance(exc_info.value, DecryptionError)

    def test_non_text_ciphertext_raises_decoding_error(self, engine):
        with pytest.raises(DecodingError):
            engine.decrypt(b"aGVsbG8=")

    def test_unencodable_plaintext_raises_encryption_error(self, fast_builder):
        engine = fast_builder.set_charset("ascii").build()

        with pytest.raises(EncryptionError) as exc_info:
            engine.encrypt("naïve")

        assert exc_info.value.details["charset"] == "ascii"

    def test_non_text_plaintext_raises_encryption_error(self, engine):
        with pytest.raises(EncryptionError):
            engine.encrypt(b"bytes")

    def test_no_padding_requires_aligned_input(self, fast_builder):
        engine = fast_builder.set_cipher_transformation("AES/CBC/NoPadding").build()

        with pytest.raises(EncryptionError):
            engine.encrypt("hello")

        assert engine.decrypt(engine.encrypt("exactly sixteen!")) == "exactly sixteen!"

    def test_undecodable_plaintext_raises_decryption_error(self, fast_builder):
        latin = fast_builder.set_charset("latin-1").build()
        ascii_engine = (
            Builder.low_iteration(TEST_KEY, TEST_SALT, TEST_IV)
            .set_charset("ascii")
            .build()
        )

        with pytest.raises(DecryptionError):
            ascii_engine.decrypt(latin.encrypt("é"))


class TestOrNone:
    """The or-none surface returns None and logs instead of raising"""

    def test_encrypt_or_none_success(self, engine, sink):
        ciphertext = engine.encrypt_or_none("hello")

        assert ciphertext == engine.encrypt("hello")
        assert sink.errors == []

    def test_decrypt_or_none_success(self, engine, sink):
        assert engine.decrypt_or_none(engine.encrypt("hello")) == "hello"
        assert sink.errors == []

    def test_decrypt_or_none_corrupted_ciphertext(self, engine, sink):
        corrupted = _flip(engine.encrypt("hello"), 3)

        assert engine.decrypt_or_none(corrupted) is None
        assert len(sink.errors) == 1
        message, error = sink.errors[0]
        assert message == "Decryption failed"
        assert isinstance(error, DecryptionError)

    def test_decrypt_or_none_invalid_encoding(self, engine, sink):
        assert engine.decrypt_or_none("%%%") is None
        assert len(sink.errors) == 1
        assert isinstance(sink.errors[0][1], DecodingError)

    def test_encrypt_or_none_failure(self, fast_builder, sink):
        engine = fast_builder.set_charset("ascii").build()

        assert engine.encrypt_or_none("naïve") is None
        assert len(sink.errors) == 1
        assert isinstance(sink.errors[0][1], EncryptionError)

    def test_or_none_without_sink_is_silent(self):
        engine = Builder.low_iteration(TEST_KEY, TEST_SALT, TEST_IV).build()

        assert engine.decrypt_or_none("%%%") is None


class TestImmutability:
    """Engines cannot be changed after build()"""

    def test_engine_rejects_attribute_assignment(self, engine):
        with pytest.raises(AttributeError):
            engine._parameters = None

        with pytest.raises(AttributeError):
            engine.extra = 1

    def test_parameters_are_frozen(self, engine):
        with pytest.raises(ValidationError):
            engine.parameters.iteration_count = 5

    def test_key_is_not_exposed_in_repr(self, engine):
        assert TEST_KEY not in repr(engine)
        assert TEST_KEY not in repr(engine.parameters)
        assert TEST_KEY not in str(engine.parameters.describe())


class TestCoroutines:
    """aencrypt/adecrypt run the pipeline in an executor"""

    @pytest.mark.asyncio
    async def test_aencrypt_adecrypt_round_trip(self, engine):
        ciphertext = await engine.aencrypt("hello")

        assert ciphertext == engine.encrypt("hello")
        assert await engine.adecrypt(ciphertext) == "hello"

    @pytest.mark.asyncio
    async def test_adecrypt_raises_decoding_error(self, engine):
        with pytest.raises(DecodingError):
            await engine.adecrypt("%%%")

    @pytest.mark.asyncio
    async def test_coroutines_use_configured_executor(self, fast_builder):
        with ThreadPoolExecutor(max_workers=2, thread_name_prefix="textcrypt-test") as pool:
            engine = fast_builder.set_executor(pool).build()

            assert await engine.adecrypt(await engine.aencrypt("pooled")) == "pooled"


class TestBackendImports:
    """The cipher registry only touches current cryptography locations"""

    def test_import_emits_no_deprecation_warnings(self):
        src = Path(__file__).resolve().parents[2] / "src"
        env = dict(os.environ, PYTHONPATH=os.pathsep.join([str(src), os.environ.get("PYTHONPATH", "")]))
        code = (
            "import warnings\n"
            "from cryptography.utils import CryptographyDeprecationWarning\n"
            "warnings.simplefilter('error', CryptographyDeprecationWarning)\n"
            "import textcrypt\n"
        )

        result = subprocess.run([sys.executable, "-c", code], env=env, capture_output=True, text=True)

        assert result.returncode == 0, result.stderr

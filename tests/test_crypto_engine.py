"""Tests for key derivation and frame encryption/decryption."""

import hashlib
import random
import string
from concurrent.futures import ThreadPoolExecutor

import pytest
from Crypto.Cipher import AES

from lg_tv_controller import (
    LgTvDecodeError,
    LgTvDisposedError,
    LgTvKeyDerivationError,
)
from lg_tv_controller.protocol import (
    KEY_SALT,
    LgCryptoEngine,
    LockedRandomSource,
    derive_key,
    pad,
)

from .conftest import KEYCODE


def _manual_frame(key, iv, payload):
    """Builds a frame from an already padded payload, bypassing the engine."""
    return AES.new(key, AES.MODE_ECB).encrypt(iv) + AES.new(key, AES.MODE_CBC, iv=iv).encrypt(payload)


class TestDeriveKey:
    """Tests for derive_key."""

    def test_matches_pbkdf2_hmac_sha256(self):
        """The key is PBKDF2-HMAC-SHA256 with the fixed salt and 16384 iterations."""
        expected = hashlib.pbkdf2_hmac("sha256", KEYCODE.encode("ascii"), KEY_SALT, 16384, 16)
        assert derive_key(KEYCODE) == expected

    def test_salt(self):
        assert KEY_SALT == bytes.fromhex("6361b80e9bdca6638d0720f2cc568fb9")

    def test_deterministic(self):
        assert derive_key(KEYCODE) == derive_key(KEYCODE)
        assert len(derive_key(KEYCODE)) == 16

    @pytest.mark.parametrize("keycode", ["", None, "ABCD123é"])
    def test_rejects_bad_keycodes(self, keycode):
        with pytest.raises(LgTvKeyDerivationError):
            derive_key(keycode)

    def test_distinct_keycodes_give_distinct_keys(self):
        """No collisions across 1000 random 8-character keycodes."""
        rng = random.Random(1234)
        alphabet = string.ascii_uppercase + string.digits
        keycodes = set()
        while len(keycodes) < 1000:
            keycodes.add("".join(rng.choice(alphabet) for _ in range(8)))
        keys = {derive_key(k) for k in keycodes}
        assert len(keys) == len(keycodes)


class TestEncode:
    """Tests for LgCryptoEngine.encode."""

    def test_frame_layout(self, keycode, deterministic_source):
        iv = bytes(range(16))
        with LgCryptoEngine(keycode, random_source=deterministic_source) as engine:
            frame = engine.encode("KEY_ACTION volumeup")
        key = derive_key(keycode)
        expected = _manual_frame(key, iv, pad(b"KEY_ACTION volumeup\r"))
        assert frame == expected

    @pytest.mark.parametrize("text", ["", "a", "x" * 14, "x" * 15, "x" * 16, "KEY_ACTION volumeup", "POWER off"])
    def test_frame_length(self, engine, text):
        frame = engine.encode(text)
        assert len(frame) >= 32
        assert len(frame) % 16 == 0
        assert len(frame) == 16 + (len((text + "\r").encode("utf-8")) // 16 + 1) * 16

    def test_fresh_iv_per_frame(self, engine):
        """Repeated commands encrypt differently."""
        assert engine.encode("POWER off") != engine.encode("POWER off")

    def test_uses_random_source(self, keycode, counting_random, deterministic_source):
        with LgCryptoEngine(keycode, random_source=deterministic_source) as engine:
            engine.encode("a")
            engine.encode("b")
        assert counting_random.calls == 2


class TestDecode:
    """Tests for LgCryptoEngine.decode."""

    @pytest.mark.parametrize(
        "text",
        ["OK", "KEY_ACTION volumeup", "POWER off", "", "x" * 15, "x" * 16, "x" * 100, "café ü"],
    )
    def test_round_trip(self, engine, text):
        assert engine.decode(engine.encode(text)) == text

    def test_trailing_noise_stripped(self, engine):
        assert engine.decode(engine.encode("OK\r\n\x00\x00")) == "OK"

    @pytest.mark.parametrize("length", [0, 1, 15, 16, 17, 31, 33])
    def test_short_or_ragged_input_is_empty(self, engine, length):
        assert engine.decode(b"\x5a" * length) == ""

    def test_none_is_empty(self, engine):
        assert engine.decode(None) == ""

    def test_wrong_key_never_raises(self, engine, other_engine):
        rng = random.Random(42)
        for _ in range(150):
            text = "".join(rng.choice(string.printable) for _ in range(rng.randint(0, 40)))
            result = other_engine.decode(engine.encode(text))
            assert isinstance(result, str)

    def test_random_bytes_never_raise(self, engine):
        rng = random.Random(7)
        for _ in range(100):
            length = 16 * rng.randint(2, 6)
            frame = bytes(rng.getrandbits(8) for _ in range(length))
            assert isinstance(engine.decode(frame), str)

    def test_invalid_padding_passthrough(self, keycode):
        """A payload with bad padding is returned as-is, not truncated."""
        key = derive_key(keycode)
        iv = bytes(16)
        frame = _manual_frame(key, iv, b"ABCDEFGHIJKLM\x01\x02\x03")
        with LgCryptoEngine(keycode) as engine:
            assert engine.decode(frame) == "ABCDEFGHIJKLM\x01\x02\x03"

    def test_invalid_utf8_replaced(self, keycode):
        key = derive_key(keycode)
        frame = _manual_frame(key, bytes(16), pad(b"OK\xff\xfe\r"))
        with LgCryptoEngine(keycode) as engine:
            assert engine.decode(frame) == "OK\ufffd\ufffd"

    def test_invalid_utf8_strict(self, keycode):
        key = derive_key(keycode)
        frame = _manual_frame(key, bytes(16), pad(b"OK\xff\xfe\r"))
        with LgCryptoEngine(keycode, strict_text=True) as engine:
            with pytest.raises(LgTvDecodeError):
                engine.decode(frame)


class TestDispose:
    """Tests for key disposal."""

    def test_key_zeroed(self, keycode):
        engine = LgCryptoEngine(keycode)
        engine.dispose()
        assert engine.disposed
        assert engine._key == bytearray(16)

    def test_use_after_dispose(self, keycode):
        engine = LgCryptoEngine(keycode)
        frame = engine.encode("OK")
        engine.dispose()
        engine.dispose()
        with pytest.raises(LgTvDisposedError):
            engine.encode("OK")
        with pytest.raises(LgTvDisposedError):
            engine.decode(frame)

    def test_context_manager_disposes(self, keycode):
        with LgCryptoEngine(keycode) as engine:
            pass
        assert engine.disposed


def test_concurrent_encode(engine):
    """Many threads may share one engine."""
    texts = [f"KEY_ACTION key{i}" for i in range(200)]
    with ThreadPoolExecutor(max_workers=8) as pool:
        frames = list(pool.map(engine.encode, texts))
    assert [engine.decode(f) for f in frames] == texts
    assert len(set(frames)) == len(frames)


def test_locked_random_source_checks_length():
    source = LockedRandomSource(lambda n: b"\x00" * (n - 1))
    with pytest.raises(ValueError):
        source.random_bytes(16)

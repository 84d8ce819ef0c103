"""Tests for PKCS#7-style block padding."""

import pytest

from lg_tv_controller.protocol import pad, pad_length, unpad, unpad_or_passthrough


@pytest.mark.parametrize(
    "length, expected_pad",
    [(0, 16), (15, 1), (16, 16), (17, 15), (31, 1)],
)
def test_pad_lengths(length, expected_pad):
    data = b"x" * length
    padded = pad(data)
    assert len(padded) - length == expected_pad
    assert pad_length(length) == expected_pad
    assert len(padded) % 16 == 0
    assert padded[:length] == data
    assert padded[length:] == bytes([expected_pad]) * expected_pad


def test_pad_never_empty():
    """A block-aligned message still gets a full block of padding."""
    assert pad(b"A" * 32)[-16:] == b"\x10" * 16


def test_unpad_valid():
    result, valid = unpad(b"hello" + b"\x0b" * 11)
    assert valid
    assert result == b"hello"


def test_unpad_full_block():
    result, valid = unpad(b"\x10" * 16)
    assert valid
    assert result == b""


@pytest.mark.parametrize(
    "data",
    [
        b"ABCDEFGHIJKLMNO\x00",        # pad length 0
        b"ABCDEFGHIJKLMNO\x11",        # pad length 17 > block size
        b"\x05\x05\x05",               # pad length longer than message
        b"ABCDEFGHIJKLM\x01\x02\x03",  # padding bytes disagree
        b"ABCDEFGHIJKL\x09\x04\x04\x04",  # mismatch in the first claimed byte
    ],
)
def test_unpad_invalid_passthrough(data):
    """Invalid padding leaves the input untouched instead of raising."""
    result, valid = unpad(data)
    assert not valid
    assert result == data
    assert unpad_or_passthrough(data) == data


def test_unpad_empty():
    result, valid = unpad(b"")
    assert not valid
    assert result == b""

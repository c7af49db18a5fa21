import pytest
from hypothesis import given, strategies as st

from keyforge.codec.wire import (
    SshReader,
    b64url_decode,
    b64url_encode,
    int_to_b64url,
    mpint,
    pem_decode,
    pem_label,
    pem_unwrap,
    pem_wrap,
    write_ssh_string,
)
from keyforge.errors import MalformedContainer


def test_mpint_high_bit_gets_zero_prefix():
    assert mpint(b64url_encode(b"\x80")) == b"\x00\x80"


def test_mpint_zero_is_empty():
    assert mpint(b64url_encode(b"\x00")) == b""


def test_mpint_low_bit_unchanged():
    assert mpint(b64url_encode(b"\x7f\xff")) == b"\x7f\xff"


@given(st.integers(min_value=1, max_value=2**4096))
def test_mpint_is_positive_and_minimal(value):
    out = mpint(int_to_b64url(value))
    # two's-complement reading must stay non-negative
    assert out[0] & 0x80 == 0
    assert int.from_bytes(out, "big") == value
    # a leading zero only ever appears in front of a high-bit byte
    if out[0] == 0:
        assert out[1] & 0x80


def test_ssh_string_length_prefix():
    assert write_ssh_string(b"none") == b"\x00\x00\x00\x04none"
    assert write_ssh_string(b"") == b"\x00\x00\x00\x00"


def test_b64url_repads():
    for raw in (b"a", b"ab", b"abc", b"abcd"):
        enc = b64url_encode(raw)
        assert "=" not in enc
        assert b64url_decode(enc) == raw


def test_int_to_b64url_fixed_width():
    assert b64url_decode(int_to_b64url(1, 32)) == b"\x00" * 31 + b"\x01"


def test_pem_wrap_64_columns():
    body = "A" * 150
    pem = pem_wrap(body, "-----BEGIN PUBLIC KEY-----", "-----END PUBLIC KEY-----")
    lines = pem.split("\n")
    assert lines[0] == "-----BEGIN PUBLIC KEY-----"
    assert lines[-1] == "-----END PUBLIC KEY-----"
    assert [len(line) for line in lines[1:-1]] == [64, 64, 22]
    assert not pem.endswith("\n")


@pytest.mark.parametrize("label", ["PUBLIC KEY", "PRIVATE KEY", "RSA PRIVATE KEY", "OPENSSH PRIVATE KEY"])
def test_pem_unwrap_strips_known_boundaries(label):
    pem = f"-----BEGIN {label}-----\r\nAAAA\nBBBB \n-----END {label}-----\n"
    assert pem_unwrap(pem) == "AAAABBBB"
    assert pem_label(pem) == label


def test_pem_decode_bad_body():
    with pytest.raises(MalformedContainer):
        pem_decode("-----BEGIN PUBLIC KEY-----\n!!!!\n-----END PUBLIC KEY-----")


def test_ssh_reader_truncated():
    r = SshReader(b"\x00\x00\x00\x10abc")
    with pytest.raises(MalformedContainer):
        r.read_string()


def test_ssh_reader_sequence():
    data = write_ssh_string(b"ssh-rsa") + b"\x00\x00\x00\x01" + write_ssh_string(b"\x00\x80")
    r = SshReader(data)
    assert r.read_text() == "ssh-rsa"
    assert r.read_uint32() == 1
    assert r.read_mpint() == 0x80
    assert r.at_end()

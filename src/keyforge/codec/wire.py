"""Binary encoding primitives shared by every SSH-derived format.

SSH "string":  uint32 big-endian length || bytes
SSH "mpint":   unsigned magnitude, a 0x00 byte prepended when the high bit of
               the first byte is set; the value zero is the empty string.

Plus Base64 / Base64URL / hex helpers and RFC 7468 PEM framing.
"""
from __future__ import annotations

import base64
import binascii
import re
import struct
from typing import List

from ..errors import MalformedContainer

PEM_LINE_WIDTH = 64

_PEM_BOUNDARY_RE = re.compile(
    r"-----(?:BEGIN|END) (?:(?:[A-Z0-9]+ )*PRIVATE KEY|PUBLIC KEY)-----"
)


def write_ssh_string(data: bytes) -> bytes:
    return struct.pack(">I", len(data)) + data


def write_uint32(value: int) -> bytes:
    return struct.pack(">I", value)


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def b64decode(text: str) -> bytes:
    """Strict standard Base64 decode; raises ``binascii.Error`` on bad input."""
    return base64.b64decode(text, validate=True)


def b64url_encode(data: bytes) -> str:
    """Base64url encode without padding."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(text: str) -> bytes:
    """Base64url decode with padding restoration."""
    pad = (4 - len(text) % 4) % 4
    return base64.urlsafe_b64decode(text + "=" * pad)


def hex_encode(data: bytes) -> str:
    return data.hex()


def hex_decode(text: str) -> bytes:
    return bytes.fromhex(text)


def int_to_b64url(value: int, length: int | None = None) -> str:
    """Unsigned big-endian integer to Base64url; minimal width unless ``length``."""
    if length is None:
        length = max(1, (value.bit_length() + 7) // 8)
    return b64url_encode(value.to_bytes(length, "big"))


def b64url_to_int(text: str) -> int:
    return int.from_bytes(b64url_decode(text), "big")


def mpint(b64url_magnitude: str) -> bytes:
    """Convert a Base64url magnitude into SSH mpint bytes (without length prefix)."""
    raw = b64url_decode(b64url_magnitude).lstrip(b"\x00")
    if raw and raw[0] & 0x80:
        return b"\x00" + raw
    return raw


def wrap_lines(b64: str, width: int = PEM_LINE_WIDTH) -> List[str]:
    return [b64[i : i + width] for i in range(0, len(b64), width)]


def pem_wrap(b64: str, header: str, footer: str) -> str:
    return "\n".join([header, *wrap_lines(b64), footer])


def pem_unwrap(pem: str) -> str:
    """Strip PUBLIC KEY / ``* PRIVATE KEY`` boundaries and all whitespace."""
    body = _PEM_BOUNDARY_RE.sub("", pem)
    return re.sub(r"\s", "", body)


def pem_label(pem: str) -> str | None:
    m = re.match(r"\s*-----BEGIN ([A-Z0-9 ]+)-----", pem)
    return m.group(1) if m else None


def pem_decode(pem: str) -> bytes:
    try:
        return b64decode(pem_unwrap(pem))
    except (binascii.Error, ValueError) as exc:
        raise MalformedContainer("PEM body is not valid Base64.") from exc


class SshReader:
    """Sequential reader over SSH wire-format bytes."""

    def __init__(self, data: bytes, offset: int = 0):
        self.data = data
        self.offset = offset

    def _take(self, n: int) -> bytes:
        end = self.offset + n
        if n < 0 or end > len(self.data):
            raise MalformedContainer(
                f"Truncated SSH data: wanted {n} bytes at offset {self.offset}."
            )
        chunk = self.data[self.offset : end]
        self.offset = end
        return chunk

    def read_uint32(self) -> int:
        return struct.unpack(">I", self._take(4))[0]

    def read_string(self) -> bytes:
        return self._take(self.read_uint32())

    def read_text(self) -> str:
        try:
            return self.read_string().decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedContainer("SSH string is not valid UTF-8.") from exc

    def read_mpint(self) -> int:
        return int.from_bytes(self.read_string(), "big")

    def remaining(self) -> bytes:
        return self.data[self.offset :]

    def at_end(self) -> bool:
        return self.offset >= len(self.data)


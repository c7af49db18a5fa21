"""PuTTY ``.ppk`` version 2 container (unencrypted).

  PuTTY-User-Key-File-2: <type>
  Encryption: none
  Comment: <comment>
  Public-Lines: <n>
  <base64 public blob, 64 columns>
  Private-Lines: <n>
  <base64 private blob, 64 columns>
  Private-MAC: <hex>

The private blob is ``d p q iqmp`` for RSA and the scalar alone for ECDSA.
The MAC is HMAC-SHA1 keyed with SHA1("putty-private-key-file-mac-key") over
the SSH strings type, encryption, comment, public blob, private blob.
"""
from __future__ import annotations

import binascii
import hashlib
import hmac
from dataclasses import dataclass
from typing import Dict, List, Tuple

from ..crypto.handles import CryptoProvider, KeyHandle
from ..errors import IntegrityMismatch, MalformedContainer, UnsupportedKeyType
from .components import EcComponents, KeyComponents, RsaComponents, export_components
from .openssh import parse_public_blob, public_blob
from .wire import SshReader, b64decode, b64encode, b64url_decode, int_to_b64url, mpint, wrap_lines, write_ssh_string

PPK_VERSION_HEADER = "PuTTY-User-Key-File-2"
MAC_KEY_SEED = b"putty-private-key-file-mac-key"
ENCRYPTION_NONE = "none"


@dataclass(frozen=True)
class PuttyKey:
    key_type: str
    comment: str
    public_blob: bytes
    private_blob: bytes
    mac: str
    components: KeyComponents


def _mac_key() -> bytes:
    return hashlib.sha1(MAC_KEY_SEED).digest()


def compute_mac(key_type: str, encryption: str, comment: str, pub: bytes, priv: bytes) -> str:
    data = b"".join(
        write_ssh_string(part)
        for part in (key_type.encode(), encryption.encode(), comment.encode(), pub, priv)
    )
    return hmac.new(_mac_key(), data, hashlib.sha1).hexdigest()


def private_blob(components: KeyComponents) -> bytes:
    if isinstance(components, RsaComponents):
        return b"".join(write_ssh_string(mpint(v)) for v in (components.d, components.p, components.q, components.qi))
    return write_ssh_string(mpint(components.d))


def encode_ppk(components: KeyComponents, comment: str) -> str:
    if not components.is_private:
        raise UnsupportedKeyType("PuTTY export", "A private key is required.")
    key_type, pub = public_blob(components)
    priv = private_blob(components)
    mac = compute_mac(key_type, ENCRYPTION_NONE, comment, pub, priv)
    pub_lines = wrap_lines(b64encode(pub))
    priv_lines = wrap_lines(b64encode(priv))
    return "\n".join([
        f"{PPK_VERSION_HEADER}: {key_type}",
        f"Encryption: {ENCRYPTION_NONE}",
        f"Comment: {comment}",
        f"Public-Lines: {len(pub_lines)}",
        *pub_lines,
        f"Private-Lines: {len(priv_lines)}",
        *priv_lines,
        f"Private-MAC: {mac}",
    ])


async def export_ppk(provider: CryptoProvider, handle: KeyHandle, comment: str) -> str:
    if handle.algorithm.family not in ("RSA", "EC"):
        raise UnsupportedKeyType("PuTTY export")
    if handle.kind != "private":
        raise UnsupportedKeyType("PuTTY export", "A private key is required.")
    components = await export_components(provider, handle)
    return encode_ppk(components, comment)


# ----------------------------------------------------------------------
# Parsing
# ----------------------------------------------------------------------


def _header(lines: List[str], idx: int, name: str) -> Tuple[str, int]:
    if idx >= len(lines) or ": " not in lines[idx]:
        raise MalformedContainer(f"Expected '{name}' header.")
    key, value = lines[idx].split(": ", 1)
    if key != name:
        raise MalformedContainer(f"Expected '{name}' header, got '{key}'.")
    return value, idx + 1


def _b64_block(lines: List[str], idx: int, name: str) -> Tuple[bytes, int]:
    count_text, idx = _header(lines, idx, name)
    try:
        count = int(count_text)
    except ValueError:
        raise MalformedContainer(f"Invalid {name} count: {count_text}") from None
    if count < 0 or idx + count > len(lines):
        raise MalformedContainer(f"Truncated {name} block.")
    try:
        data = b64decode("".join(lines[idx : idx + count]))
    except (binascii.Error, ValueError) as exc:
        raise MalformedContainer(f"{name} block is not valid Base64.") from exc
    return data, idx + count


def _private_components(key_type: str, public: KeyComponents, priv: bytes) -> KeyComponents:
    reader = SshReader(priv)
    if isinstance(public, RsaComponents):
        d, p, q, iqmp = (reader.read_mpint() for _ in range(4))
        if p < 2 or q < 2:
            raise MalformedContainer("RSA primes are missing.")
        result: KeyComponents = RsaComponents(
            n=public.n,
            e=public.e,
            d=int_to_b64url(d),
            p=int_to_b64url(p),
            q=int_to_b64url(q),
            dp=int_to_b64url(d % (p - 1)),
            dq=int_to_b64url(d % (q - 1)),
            qi=int_to_b64url(iqmp),
        )
    elif isinstance(public, EcComponents):
        size = len(b64url_decode(public.x))
        result = EcComponents(crv=public.crv, x=public.x, y=public.y, d=int_to_b64url(reader.read_mpint(), size))
    else:
        raise UnsupportedKeyType("PuTTY import", f"Key type {key_type!r} is not supported.")
    if not reader.at_end():
        raise MalformedContainer("Trailing bytes after private blob.")
    return result


def parse_ppk(text: str) -> PuttyKey:
    lines = [line.rstrip("\r") for line in text.strip().split("\n")]
    fields: Dict[str, str] = {}
    key_type, idx = _header(lines, 0, PPK_VERSION_HEADER)
    fields["Encryption"], idx = _header(lines, idx, "Encryption")
    fields["Comment"], idx = _header(lines, idx, "Comment")
    pub, idx = _b64_block(lines, idx, "Public-Lines")
    priv, idx = _b64_block(lines, idx, "Private-Lines")
    mac, idx = _header(lines, idx, "Private-MAC")

    if fields["Encryption"] != ENCRYPTION_NONE:
        raise MalformedContainer(f"Encrypted .ppk files are not supported ({fields['Encryption']}).")

    expected = compute_mac(key_type, fields["Encryption"], fields["Comment"], pub, priv)
    if not hmac.compare_digest(expected.encode(), mac.strip().lower().encode()):
        raise IntegrityMismatch("PuTTY Private-MAC does not match the key contents.")

    blob_type, public = parse_public_blob(pub)
    if blob_type != key_type:
        raise MalformedContainer(f"Header type {key_type} does not match blob type {blob_type}.")
    components = _private_components(key_type, public, priv)
    return PuttyKey(key_type, fields["Comment"], pub, priv, mac, components)


__all__ = [
    "PuttyKey",
    "compute_mac",
    "private_blob",
    "encode_ppk",
    "export_ppk",
    "parse_ppk",
]

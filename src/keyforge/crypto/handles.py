"""Provider-facing key model and capability interfaces.

The codec layer never touches a cryptographic library directly: it talks to
a ``CryptoProvider`` (Web-Crypto-shaped, see ``keyforge.crypto.webcrypto``)
and, for OpenPGP material, a ``PgpProvider`` (see ``keyforge.crypto.pgp``).
Both are passed in as parameters so tests can substitute fakes.

Key objects come in two independent families:

  KeyHandle  provider-native key (public / private / secret)
  PgpKey     OpenPGP key object carrying its own armored serialization

``AnyKey`` is the tagged variant consumed by the inspector, the exporters
and the text operations.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, Iterable, List, Literal, Mapping, Protocol, Union

KeyKind = Literal["public", "private", "secret"]
KeyForm = Literal["raw", "spki", "pkcs8", "jwk"]

# Canonical ordering used whenever usages are rendered as a list.
USAGE_ORDER = (
    "encrypt",
    "decrypt",
    "sign",
    "verify",
    "deriveKey",
    "deriveBits",
    "wrapKey",
    "unwrapKey",
)


def ordered_usages(usages: Iterable[str]) -> List[str]:
    s = set(usages)
    return [u for u in USAGE_ORDER if u in s]


@dataclass(frozen=True)
class AlgorithmDescriptor:
    name: str
    hash: str | None = None
    named_curve: str | None = None
    length: int | None = None
    modulus_length: int | None = None
    public_exponent: int | None = None

    @property
    def family(self) -> str:
        if self.name.startswith("AES-"):
            return "AES"
        if self.name.startswith("RSA-"):
            return "RSA"
        if self.name in ("ECDSA", "ECDH"):
            return "EC"
        return self.name


@dataclass(frozen=True)
class KeyHandle:
    kind: KeyKind
    algorithm: AlgorithmDescriptor
    extractable: bool
    usages: FrozenSet[str]
    # cryptography key object or raw secret bytes; opaque to everyone but the provider
    material: Any = field(default=None, repr=False, compare=False)

    def allows(self, usage: str) -> bool:
        return usage in self.usages


@dataclass(frozen=True)
class KeyPair:
    public_key: KeyHandle
    private_key: KeyHandle


@dataclass(frozen=True)
class PgpKey:
    is_private: bool
    algorithm: str
    armored: str
    key_id: str = ""
    bits: int | None = None
    curve: str | None = None
    native: Any = field(default=None, repr=False, compare=False)


@dataclass(frozen=True)
class PgpOptions:
    name: str
    email: str
    passphrase: str | None = None


@dataclass(frozen=True)
class PgpKeyPair:
    public_armored: str
    private_armored: str
    key_id: str


AnyKey = Union[KeyHandle, PgpKey]


class CryptoProvider(Protocol):
    async def generate_key(
        self, algorithm: AlgorithmDescriptor, extractable: bool, usages: Iterable[str]
    ) -> KeyHandle | KeyPair: ...

    async def export_key(self, form: KeyForm, handle: KeyHandle) -> bytes | Dict[str, Any]: ...

    async def import_key(
        self,
        form: KeyForm,
        material: bytes | Mapping[str, Any],
        algorithm: AlgorithmDescriptor,
        extractable: bool,
        usages: Iterable[str],
    ) -> KeyHandle: ...

    async def encrypt(self, handle: KeyHandle, params: Mapping[str, Any], data: bytes) -> bytes: ...

    async def decrypt(self, handle: KeyHandle, params: Mapping[str, Any], data: bytes) -> bytes: ...

    async def sign(self, handle: KeyHandle, params: Mapping[str, Any], data: bytes) -> bytes: ...

    async def verify(
        self, handle: KeyHandle, params: Mapping[str, Any], signature: bytes, data: bytes
    ) -> bool: ...


class PgpProvider(Protocol):
    async def generate_key(
        self, options: PgpOptions, key_type: str, rsa_bits: int | None = None, curve: str | None = None
    ) -> PgpKeyPair: ...

    async def read_key(self, armored: str) -> PgpKey: ...

    async def encrypt(self, key: PgpKey, text: str) -> str: ...

    async def decrypt(self, key: PgpKey, armored_message: str, passphrase: str | None = None) -> str: ...

    async def sign(self, key: PgpKey, text: str, passphrase: str | None = None) -> str: ...

    async def verify(self, key: PgpKey, armored_signature: str, text: str) -> bool: ...


__all__ = [
    "USAGE_ORDER",
    "ordered_usages",
    "AlgorithmDescriptor",
    "KeyHandle",
    "KeyPair",
    "PgpKey",
    "PgpOptions",
    "PgpKeyPair",
    "AnyKey",
    "CryptoProvider",
    "PgpProvider",
]

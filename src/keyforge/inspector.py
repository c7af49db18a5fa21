"""Key inspection: derive display properties from any imported key.

RSA and EC handles carry two personalities each (RSA-OAEP / RSA-PSS,
ECDH / ECDSA). The label is picked from the handle's usages, checked in this
order: sign/verify, then encrypt/decrypt (RSA) or deriveKey/deriveBits (EC).
A handle with none of those usages keeps the provider's algorithm name.
"""
from __future__ import annotations

from typing import Tuple

from pydantic import BaseModel, ConfigDict

from .codec.wire import b64url_decode
from .crypto.handles import AnyKey, CryptoProvider, KeyHandle, PgpKey, ordered_usages
from .errors import UnsupportedKeyType

PGP_PRIVATE_USAGES = ("decrypt", "sign")
PGP_PUBLIC_USAGES = ("encrypt", "verify")


class KeyProperties(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    algorithm: str
    size: str
    usages: Tuple[str, ...]
    extractable: bool


def inspect_pgp(key: PgpKey) -> KeyProperties:
    if key.bits:
        size = f"{key.bits} bits"
    else:
        size = key.curve or "N/A"
    return KeyProperties(
        type="private" if key.is_private else "public",
        algorithm=f"PGP/{(key.algorithm or 'Unknown').upper()}",
        size=size,
        usages=PGP_PRIVATE_USAGES if key.is_private else PGP_PUBLIC_USAGES,
        extractable=True,
    )


def personality(handle: KeyHandle) -> str:
    usages = handle.usages
    family = handle.algorithm.family
    if family == "RSA":
        if usages & {"sign", "verify"}:
            return "RSA-PSS"
        if usages & {"encrypt", "decrypt"}:
            return "RSA-OAEP"
    elif family == "EC":
        if usages & {"sign", "verify"}:
            return "ECDSA"
        if usages & {"deriveKey", "deriveBits"}:
            return "ECDH"
    return handle.algorithm.name


def _size_from_descriptor(handle: KeyHandle) -> str | None:
    alg = handle.algorithm
    if alg.family == "RSA":
        return f"{alg.modulus_length} bits" if alg.modulus_length else None
    if alg.family == "EC":
        return alg.named_curve
    return f"{alg.length} bits" if alg.length else None


async def _size_from_jwk(provider: CryptoProvider, handle: KeyHandle) -> str | None:
    jwk = await provider.export_key("jwk", handle)
    kty = jwk.get("kty")
    if kty == "RSA" and jwk.get("n"):
        return f"{len(b64url_decode(jwk['n'])) * 8} bits"
    if kty == "EC":
        return jwk.get("crv")
    if kty == "oct" and jwk.get("k"):
        return f"{len(b64url_decode(jwk['k'])) * 8} bits"
    return None


async def inspect_handle(handle: KeyHandle, provider: CryptoProvider) -> KeyProperties:
    label = personality(handle)
    if handle.algorithm.family == "RSA" and handle.algorithm.hash:
        label = f"{label} ({handle.algorithm.hash})"
    if handle.extractable:
        size = await _size_from_jwk(provider, handle)
    else:
        size = _size_from_descriptor(handle)
    return KeyProperties(
        type=handle.kind,
        algorithm=label,
        size=size or "N/A",
        usages=tuple(ordered_usages(handle.usages)),
        extractable=handle.extractable,
    )


async def inspect_key(key: AnyKey, provider: CryptoProvider) -> KeyProperties:
    if isinstance(key, PgpKey):
        return inspect_pgp(key)
    if isinstance(key, KeyHandle):
        return await inspect_handle(key, provider)
    raise UnsupportedKeyType("inspection", f"Unknown key object {type(key).__name__}.")


__all__ = ["KeyProperties", "inspect_pgp", "personality", "inspect_handle", "inspect_key"]

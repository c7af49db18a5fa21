"""Format sniffing and speculative import of untyped key text.

Decision order for ``import_key``:

1. PGP armor header -> PGP engine ``read_key``; failures fall through.
2. JSON object with ``kty`` -> JWK import, algorithm picked from ``kty``/``alg``.
3. PEM header -> try ``PEM_CANDIDATES`` in order, SPKI or PKCS8 by header.
4. Otherwise raw symmetric bytes: Base64, then hex; lengths 128/192/256 bits
   are tried under ``RAW_AES_MODES`` in order.

The first candidate the provider accepts wins. Exhausting the PEM list raises
``ProviderRejected`` with every attempt; text no branch recognises raises
``UnsupportedKeyFormat``.
"""
from __future__ import annotations

import binascii
import json
import re
from typing import Any, Dict, FrozenSet, List, Mapping, Tuple

from ..crypto.handles import AlgorithmDescriptor, AnyKey, CryptoProvider, KeyHandle, PgpProvider
from ..errors import KeyforgeError, MalformedContainer, ProviderRejected, UnsupportedKeyFormat
from ..utils.logging import get_logger
from .wire import b64decode, b64url_decode, hex_decode, pem_decode, pem_label

logger = get_logger(__name__)

PGP_ARMOR_PREFIX = "-----BEGIN PGP"
PEM_PREFIX = "-----BEGIN"

PEM_CANDIDATES: Tuple[AlgorithmDescriptor, ...] = (
    AlgorithmDescriptor(name="RSA-OAEP", hash="SHA-256"),
    AlgorithmDescriptor(name="RSA-PSS", hash="SHA-256"),
    AlgorithmDescriptor(name="ECDSA", named_curve="P-256"),
    AlgorithmDescriptor(name="ECDSA", named_curve="P-384"),
    AlgorithmDescriptor(name="ECDSA", named_curve="P-521"),
)
PUBLIC_USAGES: FrozenSet[str] = frozenset({"encrypt", "verify"})
PRIVATE_USAGES: FrozenSet[str] = frozenset({"decrypt", "sign"})

RAW_AES_LENGTHS = (128, 192, 256)
RAW_AES_MODES = ("AES-GCM", "AES-CBC", "AES-CTR")
RAW_USAGES: FrozenSet[str] = frozenset({"encrypt", "decrypt"})

# JWK "alg" -> hash bound to the RSA import; anything else falls back to SHA-256
_RSA_ALG_HASH = {
    "RSA-OAEP": "SHA-1",
    "RSA-OAEP-256": "SHA-256",
    "RSA-OAEP-384": "SHA-384",
    "RSA-OAEP-512": "SHA-512",
    "PS256": "SHA-256",
    "PS384": "SHA-384",
    "PS512": "SHA-512",
}
_HMAC_ALG_RE = re.compile(r"^HS(1|256|384|512)$")
_AES_ALG_RE = re.compile(r"^A(128|192|256)(GCM|CBC|CTR)$")


def _describe(alg: AlgorithmDescriptor) -> str:
    return f"{alg.name}/{alg.hash or alg.named_curve or alg.length}"


# ----------------------------------------------------------------------
# JWK
# ----------------------------------------------------------------------


def jwk_algorithm(jwk: Mapping[str, Any]) -> AlgorithmDescriptor | None:
    """Algorithm an asymmetric (or hinted oct) JWK is imported under.

    Returns None for an ``oct`` key without a recognised ``alg`` hint; those
    go through the raw AES candidates.
    """
    kty = jwk.get("kty")
    alg = jwk.get("alg") or ""
    if not isinstance(alg, str):
        raise MalformedContainer(f"JWK \"alg\" must be a string, got {type(alg).__name__}.")
    if kty == "RSA":
        name = "RSA-PSS" if alg.startswith("PS") or "PSS" in alg else "RSA-OAEP"
        return AlgorithmDescriptor(name=name, hash=_RSA_ALG_HASH.get(alg, "SHA-256"))
    if kty == "EC":
        name = "ECDSA" if alg.startswith("ES") else "ECDH"
        return AlgorithmDescriptor(name=name, named_curve=jwk.get("crv") or "P-256")
    if kty == "oct":
        m = _HMAC_ALG_RE.match(alg)
        if m:
            return AlgorithmDescriptor(name="HMAC", hash=f"SHA-{m.group(1)}")
        m = _AES_ALG_RE.match(alg)
        if m:
            return AlgorithmDescriptor(name=f"AES-{m.group(2)}", length=int(m.group(1)))
        return None
    raise UnsupportedKeyFormat(f"Unsupported JWK key type (kty): {kty!r}")


def jwk_usages(jwk: Mapping[str, Any]) -> FrozenSet[str]:
    if "key_ops" in jwk:
        return frozenset(jwk["key_ops"] or ())
    return PRIVATE_USAGES if "d" in jwk else PUBLIC_USAGES


async def import_jwk(jwk: Dict[str, Any], provider: CryptoProvider) -> KeyHandle:
    algorithm = jwk_algorithm(jwk)
    if algorithm is None:
        try:
            data = b64url_decode(jwk.get("k", ""))
        except (binascii.Error, ValueError) as exc:
            raise MalformedContainer("JWK \"k\" is not valid Base64url.") from exc
        return await import_raw_bytes(data, provider)
    if jwk.get("kty") == "oct":
        usages = frozenset(jwk["key_ops"]) if "key_ops" in jwk else (
            frozenset({"sign", "verify"}) if algorithm.name == "HMAC" else RAW_USAGES
        )
    else:
        usages = jwk_usages(jwk)
    logger.debug("JWK import as %s", _describe(algorithm))
    return await provider.import_key("jwk", jwk, algorithm, True, usages)


# ----------------------------------------------------------------------
# PEM
# ----------------------------------------------------------------------


async def import_pem(pem: str, provider: CryptoProvider) -> KeyHandle:
    label = pem_label(pem) or ""
    is_public = "PUBLIC" in label
    form = "spki" if is_public else "pkcs8"
    usages = PUBLIC_USAGES if is_public else PRIVATE_USAGES
    der = pem_decode(pem)

    attempts: List[Tuple[str, str]] = []
    for candidate in PEM_CANDIDATES:
        try:
            handle = await provider.import_key(form, der, candidate, True, usages)
        except ProviderRejected as exc:
            logger.debug("PEM candidate %s rejected: %s", _describe(candidate), exc)
            attempts.append((_describe(candidate), str(exc)))
            continue
        logger.debug("PEM candidate %s accepted", _describe(candidate))
        return handle
    raise ProviderRejected(
        "Could not import PEM key. The key may be corrupted or use an unsupported algorithm.",
        attempts,
    )


# ----------------------------------------------------------------------
# Raw symmetric
# ----------------------------------------------------------------------


async def _try_aes(data: bytes, provider: CryptoProvider, attempts: List[Tuple[str, str]]) -> KeyHandle | None:
    for length in RAW_AES_LENGTHS:
        if len(data) != length // 8:
            continue
        for mode in RAW_AES_MODES:
            candidate = AlgorithmDescriptor(name=mode, length=length)
            try:
                handle = await provider.import_key("raw", data, candidate, True, RAW_USAGES)
            except ProviderRejected as exc:
                logger.debug("raw candidate %s rejected: %s", _describe(candidate), exc)
                attempts.append((_describe(candidate), str(exc)))
                continue
            logger.debug("raw candidate %s accepted", _describe(candidate))
            return handle
    return None


async def import_raw_bytes(data: bytes, provider: CryptoProvider) -> KeyHandle:
    attempts: List[Tuple[str, str]] = []
    handle = await _try_aes(data, provider, attempts)
    if handle is not None:
        return handle
    if attempts:
        raise ProviderRejected("Raw key was rejected by every AES candidate.", attempts)
    raise UnsupportedKeyFormat(
        "Raw key length does not match a standard AES key size (128, 192, or 256 bits)."
    )


def _decode_raw(text: str) -> List[Tuple[str, bytes]]:
    decoded = []
    try:
        decoded.append(("base64", b64decode(text)))
    except (binascii.Error, ValueError):
        pass
    try:
        decoded.append(("hex", hex_decode(text)))
    except ValueError:
        pass
    return decoded


async def import_raw_text(text: str, provider: CryptoProvider) -> KeyHandle:
    attempts: List[Tuple[str, str]] = []
    for encoding, data in _decode_raw(text):
        logger.debug("raw %s candidate, %d bytes", encoding, len(data))
        handle = await _try_aes(data, provider, attempts)
        if handle is not None:
            return handle
    if attempts:
        raise ProviderRejected("Raw key was rejected by every AES candidate.", attempts)
    raise UnsupportedKeyFormat(
        "Unsupported key format. Please provide a valid PEM, JWK, PGP, Base64, or Hex key."
    )


# ----------------------------------------------------------------------
# Entry point
# ----------------------------------------------------------------------


def _parse_jwk(text: str) -> Dict[str, Any] | None:
    try:
        obj = json.loads(text)
    except ValueError:
        return None
    if isinstance(obj, dict) and obj.get("kty"):
        return obj
    return None


async def import_key(text: str, provider: CryptoProvider, pgp: PgpProvider | None = None) -> AnyKey:
    text = text.strip()

    if text.startswith(PGP_ARMOR_PREFIX):
        if pgp is None:
            logger.debug("PGP armor present but no PGP engine configured")
        else:
            try:
                return await pgp.read_key(text)
            except KeyforgeError as exc:
                logger.debug("PGP read failed, falling through: %s", exc)

    jwk = _parse_jwk(text)
    if jwk is not None:
        return await import_jwk(jwk, provider)

    if text.startswith(PEM_PREFIX):
        return await import_pem(text, provider)

    return await import_raw_text(text, provider)


__all__ = [
    "PEM_CANDIDATES",
    "RAW_AES_LENGTHS",
    "RAW_AES_MODES",
    "jwk_algorithm",
    "jwk_usages",
    "import_jwk",
    "import_pem",
    "import_raw_bytes",
    "import_raw_text",
    "import_key",
]

"""OpenPGP engine backed by PGPy.

PGPy is an optional dependency (``pip install keyforge[pgp]``); it is imported
on first use and ``PgpUnavailable`` is raised when it is missing. Keys are
handed around as ``PgpKey`` values whose ``armored`` field is the canonical
serialization; the parsed PGPy object rides along in ``native``.
"""
from __future__ import annotations

import asyncio
from typing import Any, Tuple

from ..errors import MalformedContainer, PgpUnavailable, ProviderRejected
from ..utils.logging import get_logger
from .handles import PgpKey, PgpKeyPair, PgpOptions

logger = get_logger(__name__)

# PGPy PubKeyAlgorithm member -> short algorithm name
_ALGORITHM_NAMES = {
    "RSAEncryptOrSign": "rsa",
    "RSAEncrypt": "rsa",
    "RSASign": "rsa",
    "DSA": "dsa",
    "ElGamal": "elgamal",
    "ECDSA": "ecdsa",
    "ECDH": "ecdh",
    "EdDSA": "eddsa",
}

SUPPORTED_CURVES = ("curve25519",)


def _require_pgpy():
    try:
        import pgpy  # type: ignore
    except ImportError as exc:
        raise PgpUnavailable("PGPy not installed; install keyforge[pgp] for PGP support") from exc
    return pgpy


def _pgpy_errors() -> Tuple[type, ...]:
    pgpy = _require_pgpy()
    return (pgpy.errors.PGPError, ValueError, TypeError, NotImplementedError)


def _to_text(payload: Any) -> str:
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload).decode("utf-8")
    return str(payload)


def describe(native: Any) -> PgpKey:
    """Build a ``PgpKey`` from a parsed PGPy key."""
    algorithm = _ALGORITHM_NAMES.get(native.key_algorithm.name, native.key_algorithm.name.lower())
    size = native.key_size
    bits = size if isinstance(size, int) else None
    curve = None if bits is not None else getattr(size, "name", str(size)).lower()
    return PgpKey(
        is_private=not native.is_public,
        algorithm=algorithm,
        armored=str(native),
        key_id=native.fingerprint.keyid.upper(),
        bits=bits,
        curve=curve,
        native=native,
    )


def _new_key(options: PgpOptions, key_type: str, rsa_bits: int | None, curve: str | None):
    pgpy = _require_pgpy()
    from pgpy.constants import (  # type: ignore
        CompressionAlgorithm,
        EllipticCurveOID,
        HashAlgorithm,
        KeyFlags,
        PubKeyAlgorithm,
        SymmetricKeyAlgorithm,
    )

    prefs = dict(
        hashes=[HashAlgorithm.SHA256, HashAlgorithm.SHA384, HashAlgorithm.SHA512],
        ciphers=[SymmetricKeyAlgorithm.AES256, SymmetricKeyAlgorithm.AES128],
        compression=[CompressionAlgorithm.ZLIB, CompressionAlgorithm.Uncompressed],
    )
    uid = pgpy.PGPUID.new(options.name, email=options.email)
    if key_type == "rsa":
        key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, rsa_bits or 4096)
        key.add_uid(
            uid,
            usage={KeyFlags.Sign, KeyFlags.Certify, KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage},
            **prefs,
        )
    elif key_type == "ecc":
        if (curve or "curve25519") not in SUPPORTED_CURVES:
            raise ProviderRejected(f"Unsupported PGP curve: {curve}")
        key = pgpy.PGPKey.new(PubKeyAlgorithm.EdDSA, EllipticCurveOID.Ed25519)
        key.add_uid(uid, usage={KeyFlags.Sign, KeyFlags.Certify}, **prefs)
        subkey = pgpy.PGPKey.new(PubKeyAlgorithm.ECDH, EllipticCurveOID.Curve25519)
        key.add_subkey(subkey, usage={KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage})
    else:
        raise ProviderRejected(f"Unsupported PGP key type: {key_type}")

    if options.passphrase:
        key.protect(options.passphrase, SymmetricKeyAlgorithm.AES256, HashAlgorithm.SHA256)
    return key


class PgpyProvider:
    """``PgpProvider`` implementation on top of PGPy."""

    async def generate_key(
        self, options: PgpOptions, key_type: str, rsa_bits: int | None = None, curve: str | None = None
    ) -> PgpKeyPair:
        key = await asyncio.to_thread(_new_key, options, key_type, rsa_bits, curve)
        keyid = key.fingerprint.keyid.upper()
        logger.info("generated %s key %s", key_type, keyid)
        return PgpKeyPair(public_armored=str(key.pubkey), private_armored=str(key), key_id=keyid)

    async def read_key(self, armored: str) -> PgpKey:
        pgpy = _require_pgpy()
        try:
            native, _ = pgpy.PGPKey.from_blob(armored)
        except _pgpy_errors() as exc:
            raise MalformedContainer(f"Could not read PGP key: {exc}") from exc
        return describe(native)

    async def encrypt(self, key: PgpKey, text: str) -> str:
        pgpy = _require_pgpy()
        native = key.native
        if not key.is_private:
            target = native
        else:
            target = native.pubkey
        try:
            message = target.encrypt(pgpy.PGPMessage.new(text))
        except _pgpy_errors() as exc:
            raise ProviderRejected(f"PGP encryption failed: {exc}") from exc
        return str(message)

    async def decrypt(self, key: PgpKey, armored_message: str, passphrase: str | None = None) -> str:
        pgpy = _require_pgpy()
        if not key.is_private:
            raise ProviderRejected("A private PGP key is required to decrypt.")
        native = key.native
        try:
            message = pgpy.PGPMessage.from_blob(armored_message)
            if native.is_protected:
                if not passphrase:
                    raise ProviderRejected("PGP key is passphrase protected.")
                with native.unlock(passphrase):
                    plain = native.decrypt(message)
            else:
                plain = native.decrypt(message)
        except _pgpy_errors() as exc:
            raise ProviderRejected(f"PGP decryption failed: {exc}") from exc
        return _to_text(plain.message)

    async def sign(self, key: PgpKey, text: str, passphrase: str | None = None) -> str:
        if not key.is_private:
            raise ProviderRejected("A private PGP key is required to sign.")
        native = key.native
        try:
            if native.is_protected:
                if not passphrase:
                    raise ProviderRejected("PGP key is passphrase protected.")
                with native.unlock(passphrase):
                    signature = native.sign(text)
            else:
                signature = native.sign(text)
        except _pgpy_errors() as exc:
            raise ProviderRejected(f"PGP signing failed: {exc}") from exc
        return str(signature)

    async def verify(self, key: PgpKey, armored_signature: str, text: str) -> bool:
        pgpy = _require_pgpy()
        native = key.native.pubkey if key.is_private else key.native
        try:
            signature = pgpy.PGPSignature.from_blob(armored_signature)
            return bool(native.verify(text, signature))
        except _pgpy_errors() as exc:
            raise ProviderRejected(f"PGP verification failed: {exc}") from exc


__all__ = ["PgpyProvider", "describe", "SUPPORTED_CURVES"]

"""Text signing helpers for provider handles and PGP keys.

Signatures are Base64 (RSA-PSS, ECDSA in ``r||s`` form, HMAC); PGP keys give
armored detached signatures.
"""
from __future__ import annotations

import binascii

from ..codec.wire import b64decode, b64encode
from ..errors import KeyforgeError, MalformedContainer, PgpUnavailable, UnsupportedKeyType
from ..utils.logging import get_logger
from .handles import AnyKey, CryptoProvider, KeyHandle, PgpKey, PgpProvider

logger = get_logger(__name__)

PSS_SALT_LENGTH = 32
DEFAULT_ECDSA_HASH = "SHA-256"


def _params(handle: KeyHandle, target: str) -> dict:
    name = handle.algorithm.name
    if name == "RSA-PSS":
        return {"name": name, "saltLength": PSS_SALT_LENGTH}
    if name == "ECDSA":
        return {"name": name, "hash": handle.algorithm.hash or DEFAULT_ECDSA_HASH}
    if name == "HMAC":
        return {"name": name}
    raise UnsupportedKeyType(target, f"{target.capitalize()} not supported for algorithm: {name}")


async def sign_text(
    key: AnyKey,
    message: str,
    provider: CryptoProvider,
    pgp: PgpProvider | None = None,
    passphrase: str | None = None,
) -> str:
    if isinstance(key, PgpKey):
        if pgp is None:
            raise PgpUnavailable("No PGP engine configured for a PGP key.")
        return await pgp.sign(key, message, passphrase)
    if not isinstance(key, KeyHandle):
        raise UnsupportedKeyType("signing")
    signature = await provider.sign(key, _params(key, "signing"), message.encode("utf-8"))
    return b64encode(signature)


async def verify_text(
    key: AnyKey,
    signature: str,
    message: str,
    provider: CryptoProvider,
    pgp: PgpProvider | None = None,
) -> bool:
    if isinstance(key, PgpKey):
        if pgp is None:
            raise PgpUnavailable("No PGP engine configured for a PGP key.")
        try:
            return await pgp.verify(key, signature, message)
        except KeyforgeError as exc:
            logger.warning("pgp verification error: %s", exc)
            return False
    if not isinstance(key, KeyHandle):
        raise UnsupportedKeyType("verification")
    params = _params(key, "verification")
    try:
        raw = b64decode(signature.strip())
    except (binascii.Error, ValueError) as exc:
        raise MalformedContainer("Signature is not valid Base64.") from exc
    return await provider.verify(key, params, raw, message.encode("utf-8"))


__all__ = ["sign_text", "verify_text"]

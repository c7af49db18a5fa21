"""Text encryption helpers over provider handles and PGP keys.

Ciphertext is Base64; for AES modes the random IV (or CTR counter block) is
prepended to the ciphertext. PGP keys produce and consume armored messages.
"""
from __future__ import annotations

import binascii
import os

from ..codec.wire import b64decode, b64encode
from ..errors import MalformedContainer, PgpUnavailable, UnsupportedKeyType
from .handles import AnyKey, CryptoProvider, KeyHandle, PgpKey, PgpProvider

IV_LENGTHS = {"AES-GCM": 12, "AES-CBC": 16, "AES-CTR": 16}
CTR_COUNTER_BITS = 64


def _aes_params(name: str, iv: bytes) -> dict:
    if name == "AES-CTR":
        return {"name": name, "counter": iv, "length": CTR_COUNTER_BITS}
    return {"name": name, "iv": iv}


def _need_pgp(pgp: PgpProvider | None) -> PgpProvider:
    if pgp is None:
        raise PgpUnavailable("No PGP engine configured for a PGP key.")
    return pgp


async def encrypt_text(
    key: AnyKey, plaintext: str, provider: CryptoProvider, pgp: PgpProvider | None = None
) -> str:
    if isinstance(key, PgpKey):
        return await _need_pgp(pgp).encrypt(key, plaintext)
    if not isinstance(key, KeyHandle):
        raise UnsupportedKeyType("encryption")
    data = plaintext.encode("utf-8")
    name = key.algorithm.name
    if name == "RSA-OAEP":
        return b64encode(await provider.encrypt(key, {"name": name}, data))
    if name in IV_LENGTHS:
        iv = os.urandom(IV_LENGTHS[name])
        ciphertext = await provider.encrypt(key, _aes_params(name, iv), data)
        return b64encode(iv + ciphertext)
    raise UnsupportedKeyType("encryption", f"Encryption not supported for algorithm: {name}")


async def decrypt_text(
    key: AnyKey,
    ciphertext: str,
    provider: CryptoProvider,
    pgp: PgpProvider | None = None,
    passphrase: str | None = None,
) -> str:
    if isinstance(key, PgpKey):
        return await _need_pgp(pgp).decrypt(key, ciphertext, passphrase)
    if not isinstance(key, KeyHandle):
        raise UnsupportedKeyType("decryption")
    try:
        data = b64decode(ciphertext.strip())
    except (binascii.Error, ValueError) as exc:
        raise MalformedContainer("Ciphertext is not valid Base64.") from exc
    name = key.algorithm.name
    if name == "RSA-OAEP":
        plain = await provider.decrypt(key, {"name": name}, data)
    elif name in IV_LENGTHS:
        n = IV_LENGTHS[name]
        if len(data) < n:
            raise MalformedContainer("Ciphertext is shorter than its IV.")
        plain = await provider.decrypt(key, _aes_params(name, data[:n]), data[n:])
    else:
        raise UnsupportedKeyType("decryption", f"Decryption not supported for algorithm: {name}")
    try:
        return plain.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise MalformedContainer("Decrypted data is not UTF-8 text.") from exc


__all__ = ["IV_LENGTHS", "encrypt_text", "decrypt_text"]

"""Web-Crypto-style provider backed by the ``cryptography`` library.

Implements the ``CryptoProvider`` capability interface with the behaviour the
codec layer was designed against (SubtleCrypto):

  generate_key(algorithm, extractable, usages) -> KeyHandle | KeyPair
  export_key(form, handle)        form in raw | spki | pkcs8 | jwk
  import_key(form, material, algorithm, extractable, usages)
  encrypt / decrypt / sign / verify

Usage policy: requested usages are intersected with the set the algorithm
permits for the key's kind. Secret and private keys must end up with at least
one usage; public keys may end up with none (ECDH public keys never have any).

All failures surface as ``ProviderRejected``; the underlying library error is
chained as ``__cause__``.
"""
from __future__ import annotations

import asyncio
import os
from typing import Any, Dict, FrozenSet, Iterable, Mapping

from cryptography.exceptions import InvalidSignature, InvalidTag, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, hmac, serialization
from cryptography.hazmat.primitives import padding as sym_padding
from cryptography.hazmat.primitives.asymmetric import ec, rsa, utils
from cryptography.hazmat.primitives.asymmetric import padding as asym_padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..codec.wire import b64url_decode, b64url_encode, b64url_to_int, int_to_b64url
from ..errors import ProviderRejected
from .handles import AlgorithmDescriptor, KeyHandle, KeyPair, ordered_usages

_AES_USAGES = frozenset({"encrypt", "decrypt", "wrapKey", "unwrapKey"})

# (algorithm name) -> {kind: permitted usages}
PERMITTED_USAGES: Dict[str, Dict[str, FrozenSet[str]]] = {
    "AES-GCM": {"secret": _AES_USAGES},
    "AES-CBC": {"secret": _AES_USAGES},
    "AES-CTR": {"secret": _AES_USAGES},
    "HMAC": {"secret": frozenset({"sign", "verify"})},
    "RSA-OAEP": {"public": frozenset({"encrypt", "wrapKey"}), "private": frozenset({"decrypt", "unwrapKey"})},
    "RSA-PSS": {"public": frozenset({"verify"}), "private": frozenset({"sign"})},
    "ECDSA": {"public": frozenset({"verify"}), "private": frozenset({"sign"})},
    "ECDH": {"public": frozenset(), "private": frozenset({"deriveKey", "deriveBits"})},
}

CURVES = {
    "P-256": ec.SECP256R1,
    "P-384": ec.SECP384R1,
    "P-521": ec.SECP521R1,
}
_CURVE_BY_NAME = {cls.name: crv for crv, cls in CURVES.items()}

HASHES = {
    "SHA-1": hashes.SHA1,
    "SHA-256": hashes.SHA256,
    "SHA-384": hashes.SHA384,
    "SHA-512": hashes.SHA512,
}

# HMAC default key length is the hash block size
_HMAC_BLOCK_BITS = {"SHA-1": 512, "SHA-256": 512, "SHA-384": 1024, "SHA-512": 1024}

_RSA_OAEP_JWK = {"SHA-1": "RSA-OAEP", "SHA-256": "RSA-OAEP-256", "SHA-384": "RSA-OAEP-384", "SHA-512": "RSA-OAEP-512"}
_RSA_PSS_JWK = {"SHA-1": "PS1", "SHA-256": "PS256", "SHA-384": "PS384", "SHA-512": "PS512"}
_HMAC_JWK = {"SHA-1": "HS1", "SHA-256": "HS256", "SHA-384": "HS384", "SHA-512": "HS512"}
_ECDSA_JWK = {"P-256": "ES256", "P-384": "ES384", "P-521": "ES512"}

_RSA_PRIVATE_FIELDS = ("d", "p", "q", "dp", "dq", "qi")


def _curve_size(named_curve: str) -> int:
    return (CURVES[named_curve]().key_size + 7) // 8


def _hash(name: str | None) -> hashes.HashAlgorithm:
    if name not in HASHES:
        raise ProviderRejected(f"Unsupported hash: {name}")
    return HASHES[name]()


def _resolve_usages(algorithm: AlgorithmDescriptor, kind: str, requested: Iterable[str]) -> FrozenSet[str]:
    requested = frozenset(requested)
    table = PERMITTED_USAGES.get(algorithm.name)
    if table is None:
        raise ProviderRejected(f"Unsupported algorithm: {algorithm.name}")
    if kind not in table:
        raise ProviderRejected(f"{algorithm.name} has no {kind} keys.")
    granted = requested & table[kind]
    if not granted and kind in ("secret", "private"):
        raise ProviderRejected(
            f"Cannot create a {kind} {algorithm.name} key with usages {ordered_usages(requested)}."
        )
    return granted


def jwk_alg(algorithm: AlgorithmDescriptor) -> str | None:
    name = algorithm.name
    if name == "RSA-OAEP":
        return _RSA_OAEP_JWK.get(algorithm.hash or "")
    if name == "RSA-PSS":
        return _RSA_PSS_JWK.get(algorithm.hash or "")
    if name == "HMAC":
        return _HMAC_JWK.get(algorithm.hash or "")
    if name == "ECDSA":
        return _ECDSA_JWK.get(algorithm.named_curve or "")
    if name.startswith("AES-") and algorithm.length:
        return f"A{algorithm.length}{name[4:]}"
    return None


class CryptographyProvider:
    """``CryptoProvider`` implementation on top of ``cryptography``."""

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate_key(
        self, algorithm: AlgorithmDescriptor, extractable: bool, usages: Iterable[str]
    ) -> KeyHandle | KeyPair:
        usages = frozenset(usages)
        family = algorithm.family
        if family == "AES":
            if algorithm.length not in (128, 192, 256):
                raise ProviderRejected(f"AES key length must be 128, 192 or 256 bits, got {algorithm.length}.")
            granted = _resolve_usages(algorithm, "secret", usages)
            return KeyHandle("secret", algorithm, extractable, granted, os.urandom(algorithm.length // 8))
        if family == "HMAC":
            _hash(algorithm.hash)
            length = algorithm.length or _HMAC_BLOCK_BITS[algorithm.hash]
            granted = _resolve_usages(algorithm, "secret", usages)
            desc = AlgorithmDescriptor(name="HMAC", hash=algorithm.hash, length=length)
            return KeyHandle("secret", desc, extractable, granted, os.urandom((length + 7) // 8))
        if family == "RSA":
            _hash(algorithm.hash)
            if not algorithm.modulus_length or algorithm.modulus_length < 1024:
                raise ProviderRejected(f"Unsupported RSA modulus length: {algorithm.modulus_length}")
            exponent = algorithm.public_exponent or 65537
            try:
                # RSA generation is CPU bound; keep it off the event loop
                sk = await asyncio.to_thread(
                    rsa.generate_private_key, public_exponent=exponent, key_size=algorithm.modulus_length
                )
            except ValueError as exc:
                raise ProviderRejected(str(exc)) from exc
            desc = AlgorithmDescriptor(name=algorithm.name, hash=algorithm.hash,
                                       modulus_length=algorithm.modulus_length, public_exponent=exponent)
            return self._pair(desc, sk, extractable, usages)
        if family == "EC":
            curve = CURVES.get(algorithm.named_curve or "")
            if curve is None:
                raise ProviderRejected(f"Unsupported named curve: {algorithm.named_curve}")
            sk = ec.generate_private_key(curve())
            return self._pair(algorithm, sk, extractable, usages)
        raise ProviderRejected(f"Unsupported algorithm: {algorithm.name}")

    @staticmethod
    def _pair(desc: AlgorithmDescriptor, sk: Any, extractable: bool, usages: FrozenSet[str]) -> KeyPair:
        private_usages = _resolve_usages(desc, "private", usages)
        public_usages = usages & PERMITTED_USAGES[desc.name]["public"]
        # public halves are always extractable
        return KeyPair(
            public_key=KeyHandle("public", desc, True, public_usages, sk.public_key()),
            private_key=KeyHandle("private", desc, extractable, private_usages, sk),
        )

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export_key(self, form: str, handle: KeyHandle) -> bytes | Dict[str, Any]:
        if not handle.extractable:
            raise ProviderRejected("Key is not extractable.")
        if form == "raw":
            if handle.kind == "secret":
                return bytes(handle.material)
            if handle.kind == "public" and handle.algorithm.family == "EC":
                return handle.material.public_bytes(
                    serialization.Encoding.X962, serialization.PublicFormat.UncompressedPoint
                )
            raise ProviderRejected(f"Cannot export a {handle.kind} {handle.algorithm.name} key as raw.")
        if form == "spki":
            if handle.kind != "public":
                raise ProviderRejected("Only public keys can be exported as spki.")
            return handle.material.public_bytes(
                serialization.Encoding.DER, serialization.PublicFormat.SubjectPublicKeyInfo
            )
        if form == "pkcs8":
            if handle.kind != "private":
                raise ProviderRejected("Only private keys can be exported as pkcs8.")
            return handle.material.private_bytes(
                serialization.Encoding.DER,
                serialization.PrivateFormat.PKCS8,
                serialization.NoEncryption(),
            )
        if form == "jwk":
            return self._export_jwk(handle)
        raise ProviderRejected(f"Unsupported export format: {form}")

    @staticmethod
    def _export_jwk(handle: KeyHandle) -> Dict[str, Any]:
        alg = handle.algorithm
        jwk: Dict[str, Any]
        if handle.kind == "secret":
            jwk = {"kty": "oct", "k": b64url_encode(bytes(handle.material))}
        elif alg.family == "RSA":
            if handle.kind == "private":
                priv = handle.material.private_numbers()
                pub = priv.public_numbers
            else:
                priv = None
                pub = handle.material.public_numbers()
            jwk = {"kty": "RSA", "n": int_to_b64url(pub.n), "e": int_to_b64url(pub.e)}
            if priv is not None:
                jwk.update(
                    d=int_to_b64url(priv.d),
                    p=int_to_b64url(priv.p),
                    q=int_to_b64url(priv.q),
                    dp=int_to_b64url(priv.dmp1),
                    dq=int_to_b64url(priv.dmq1),
                    qi=int_to_b64url(priv.iqmp),
                )
        elif alg.family == "EC":
            size = _curve_size(alg.named_curve)
            if handle.kind == "private":
                priv = handle.material.private_numbers()
                pub = priv.public_numbers
            else:
                priv = None
                pub = handle.material.public_numbers()
            jwk = {
                "kty": "EC",
                "crv": alg.named_curve,
                "x": int_to_b64url(pub.x, size),
                "y": int_to_b64url(pub.y, size),
            }
            if priv is not None:
                jwk["d"] = int_to_b64url(priv.private_value, size)
        else:
            raise ProviderRejected(f"Cannot export {alg.name} as jwk.")
        name = jwk_alg(alg)
        if name:
            jwk["alg"] = name
        jwk["ext"] = handle.extractable
        jwk["key_ops"] = ordered_usages(handle.usages)
        return jwk

    # ------------------------------------------------------------------
    # Import
    # ------------------------------------------------------------------

    async def import_key(
        self,
        form: str,
        material: bytes | Mapping[str, Any],
        algorithm: AlgorithmDescriptor,
        extractable: bool,
        usages: Iterable[str],
    ) -> KeyHandle:
        usages = frozenset(usages)
        try:
            if form == "jwk":
                if not isinstance(material, Mapping):
                    raise ProviderRejected("JWK material must be a JSON object.")
                return self._import_jwk(dict(material), algorithm, extractable, usages)
            if not isinstance(material, (bytes, bytearray)):
                raise ProviderRejected(f"{form} material must be bytes.")
            data = bytes(material)
            if form == "raw":
                return self._import_raw(data, algorithm, extractable, usages)
            if form == "spki":
                key = serialization.load_der_public_key(data)
                return self._wrap_asymmetric(key, "public", algorithm, extractable, usages)
            if form == "pkcs8":
                key = serialization.load_der_private_key(data, password=None)
                return self._wrap_asymmetric(key, "private", algorithm, extractable, usages)
        except (ValueError, TypeError, KeyError, UnsupportedAlgorithm) as exc:
            raise ProviderRejected(f"{algorithm.name} rejected {form} key material: {exc}") from exc
        raise ProviderRejected(f"Unsupported import format: {form}")

    def _import_raw(
        self, data: bytes, algorithm: AlgorithmDescriptor, extractable: bool, usages: FrozenSet[str]
    ) -> KeyHandle:
        family = algorithm.family
        if family == "AES":
            bits = len(data) * 8
            if bits not in (128, 192, 256):
                raise ProviderRejected(f"AES key data must be 128, 192 or 256 bits, got {bits}.")
            if algorithm.length and algorithm.length != bits:
                raise ProviderRejected(f"AES key length mismatch: expected {algorithm.length}, got {bits}.")
            desc = AlgorithmDescriptor(name=algorithm.name, length=bits)
            return KeyHandle("secret", desc, extractable, _resolve_usages(desc, "secret", usages), data)
        if family == "HMAC":
            if not data:
                raise ProviderRejected("HMAC key data must not be empty.")
            _hash(algorithm.hash)
            desc = AlgorithmDescriptor(name="HMAC", hash=algorithm.hash, length=len(data) * 8)
            return KeyHandle("secret", desc, extractable, _resolve_usages(desc, "secret", usages), data)
        if family == "EC":
            curve = CURVES.get(algorithm.named_curve or "")
            if curve is None:
                raise ProviderRejected(f"Unsupported named curve: {algorithm.named_curve}")
            key = ec.EllipticCurvePublicKey.from_encoded_point(curve(), data)
            return self._wrap_asymmetric(key, "public", algorithm, extractable, usages)
        raise ProviderRejected(f"{algorithm.name} keys cannot be imported from raw bytes.")

    def _wrap_asymmetric(
        self, key: Any, kind: str, algorithm: AlgorithmDescriptor, extractable: bool, usages: FrozenSet[str]
    ) -> KeyHandle:
        family = algorithm.family
        if family == "RSA":
            if not isinstance(key, (rsa.RSAPublicKey, rsa.RSAPrivateKey)):
                raise ProviderRejected(f"{algorithm.name} requires an RSA key.")
            _hash(algorithm.hash)
            pub = key.public_key() if kind == "private" else key
            desc = AlgorithmDescriptor(
                name=algorithm.name,
                hash=algorithm.hash,
                modulus_length=pub.key_size,
                public_exponent=pub.public_numbers().e,
            )
        elif family == "EC":
            if not isinstance(key, (ec.EllipticCurvePublicKey, ec.EllipticCurvePrivateKey)):
                raise ProviderRejected(f"{algorithm.name} requires an EC key.")
            actual = _CURVE_BY_NAME.get(key.curve.name)
            if actual is None or actual != algorithm.named_curve:
                raise ProviderRejected(
                    f"Named curve mismatch: expected {algorithm.named_curve}, got {actual or key.curve.name}."
                )
            desc = AlgorithmDescriptor(name=algorithm.name, named_curve=actual)
        else:
            raise ProviderRejected(f"{algorithm.name} is not an asymmetric algorithm.")
        return KeyHandle(kind, desc, extractable, _resolve_usages(desc, kind, usages), key)

    def _import_jwk(
        self, jwk: Dict[str, Any], algorithm: AlgorithmDescriptor, extractable: bool, usages: FrozenSet[str]
    ) -> KeyHandle:
        if jwk.get("ext") is False and extractable:
            raise ProviderRejected("JWK is marked non-extractable.")
        key_ops = jwk.get("key_ops")
        if key_ops is not None and not usages <= set(key_ops):
            raise ProviderRejected("Requested usages are not permitted by the JWK key_ops.")
        expected_alg = jwk_alg(algorithm)
        family = algorithm.family
        kty = jwk.get("kty")

        if family in ("AES", "HMAC"):
            if kty != "oct" or "k" not in jwk:
                raise ProviderRejected(f"{algorithm.name} requires an oct JWK.")
            data = b64url_decode(jwk["k"])
            if family == "AES":
                algorithm = AlgorithmDescriptor(name=algorithm.name, length=len(data) * 8)
                expected_alg = jwk_alg(algorithm)
            if "alg" in jwk and expected_alg and jwk["alg"] != expected_alg:
                raise ProviderRejected(f"JWK alg {jwk['alg']} does not match {expected_alg}.")
            return self._import_raw(data, algorithm, extractable, usages)

        if family == "RSA":
            if kty != "RSA":
                raise ProviderRejected(f"{algorithm.name} requires an RSA JWK.")
            if "alg" in jwk and expected_alg and jwk["alg"] != expected_alg:
                raise ProviderRejected(f"JWK alg {jwk['alg']} does not match {expected_alg}.")
            pub = rsa.RSAPublicNumbers(b64url_to_int(jwk["e"]), b64url_to_int(jwk["n"]))
            if "d" not in jwk:
                return self._wrap_asymmetric(pub.public_key(), "public", algorithm, extractable, usages)
            missing = [f for f in _RSA_PRIVATE_FIELDS if f not in jwk]
            if missing:
                raise ProviderRejected(f"RSA private JWK is missing {', '.join(missing)}.")
            priv = rsa.RSAPrivateNumbers(
                p=b64url_to_int(jwk["p"]),
                q=b64url_to_int(jwk["q"]),
                d=b64url_to_int(jwk["d"]),
                dmp1=b64url_to_int(jwk["dp"]),
                dmq1=b64url_to_int(jwk["dq"]),
                iqmp=b64url_to_int(jwk["qi"]),
                public_numbers=pub,
            )
            return self._wrap_asymmetric(priv.private_key(), "private", algorithm, extractable, usages)

        if family == "EC":
            if kty != "EC":
                raise ProviderRejected(f"{algorithm.name} requires an EC JWK.")
            if jwk.get("crv") != algorithm.named_curve:
                raise ProviderRejected(f"JWK curve {jwk.get('crv')} does not match {algorithm.named_curve}.")
            curve = CURVES[algorithm.named_curve]()
            pub = ec.EllipticCurvePublicNumbers(b64url_to_int(jwk["x"]), b64url_to_int(jwk["y"]), curve)
            if "d" not in jwk:
                return self._wrap_asymmetric(pub.public_key(), "public", algorithm, extractable, usages)
            sk = ec.derive_private_key(b64url_to_int(jwk["d"]), curve)
            if sk.public_key().public_numbers() != pub:
                raise ProviderRejected("EC JWK private scalar does not match its public point.")
            return self._wrap_asymmetric(sk, "private", algorithm, extractable, usages)

        raise ProviderRejected(f"Unsupported algorithm: {algorithm.name}")

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    @staticmethod
    def _require(handle: KeyHandle, usage: str) -> None:
        if not handle.allows(usage):
            raise ProviderRejected(f"Key does not permit '{usage}'.")

    @staticmethod
    def _aes_cipher(handle: KeyHandle, params: Mapping[str, Any]) -> Cipher:
        name = handle.algorithm.name
        if name == "AES-CBC":
            return Cipher(algorithms.AES(handle.material), modes.CBC(params["iv"]))
        if name == "AES-CTR":
            return Cipher(algorithms.AES(handle.material), modes.CTR(params["counter"]))
        raise ProviderRejected(f"Unsupported cipher: {name}")

    async def encrypt(self, handle: KeyHandle, params: Mapping[str, Any], data: bytes) -> bytes:
        self._require(handle, "encrypt")
        name = handle.algorithm.name
        try:
            if name == "RSA-OAEP":
                h = _hash(handle.algorithm.hash)
                return handle.material.encrypt(
                    data,
                    asym_padding.OAEP(mgf=asym_padding.MGF1(h), algorithm=h, label=params.get("label")),
                )
            if name == "AES-GCM":
                return AESGCM(handle.material).encrypt(params["iv"], data, params.get("additionalData"))
            if name == "AES-CBC":
                padder = sym_padding.PKCS7(128).padder()
                padded = padder.update(data) + padder.finalize()
                enc = self._aes_cipher(handle, params).encryptor()
                return enc.update(padded) + enc.finalize()
            if name == "AES-CTR":
                enc = self._aes_cipher(handle, params).encryptor()
                return enc.update(data) + enc.finalize()
        except (ValueError, TypeError, KeyError) as exc:
            raise ProviderRejected(f"{name} encryption failed: {exc}") from exc
        raise ProviderRejected(f"Encryption not supported for algorithm: {name}")

    async def decrypt(self, handle: KeyHandle, params: Mapping[str, Any], data: bytes) -> bytes:
        self._require(handle, "decrypt")
        name = handle.algorithm.name
        try:
            if name == "RSA-OAEP":
                h = _hash(handle.algorithm.hash)
                return handle.material.decrypt(
                    data,
                    asym_padding.OAEP(mgf=asym_padding.MGF1(h), algorithm=h, label=params.get("label")),
                )
            if name == "AES-GCM":
                return AESGCM(handle.material).decrypt(params["iv"], data, params.get("additionalData"))
            if name == "AES-CBC":
                dec = self._aes_cipher(handle, params).decryptor()
                padded = dec.update(data) + dec.finalize()
                unpadder = sym_padding.PKCS7(128).unpadder()
                return unpadder.update(padded) + unpadder.finalize()
            if name == "AES-CTR":
                dec = self._aes_cipher(handle, params).decryptor()
                return dec.update(data) + dec.finalize()
        except InvalidTag as exc:
            raise ProviderRejected("Authentication failed: wrong key or corrupted data.") from exc
        except (ValueError, TypeError, KeyError) as exc:
            raise ProviderRejected(f"{name} decryption failed: {exc}") from exc
        raise ProviderRejected(f"Decryption not supported for algorithm: {name}")

    async def sign(self, handle: KeyHandle, params: Mapping[str, Any], data: bytes) -> bytes:
        self._require(handle, "sign")
        name = handle.algorithm.name
        if name == "RSA-PSS":
            h = _hash(handle.algorithm.hash)
            return handle.material.sign(
                data, asym_padding.PSS(mgf=asym_padding.MGF1(h), salt_length=params.get("saltLength", 32)), h
            )
        if name == "ECDSA":
            der = handle.material.sign(data, ec.ECDSA(_hash(params.get("hash", "SHA-256"))))
            r, s = utils.decode_dss_signature(der)
            size = _curve_size(handle.algorithm.named_curve)
            return r.to_bytes(size, "big") + s.to_bytes(size, "big")
        if name == "HMAC":
            mac = hmac.HMAC(handle.material, _hash(handle.algorithm.hash))
            mac.update(data)
            return mac.finalize()
        raise ProviderRejected(f"Signing not supported for algorithm: {name}")

    async def verify(self, handle: KeyHandle, params: Mapping[str, Any], signature: bytes, data: bytes) -> bool:
        self._require(handle, "verify")
        name = handle.algorithm.name
        try:
            if name == "RSA-PSS":
                h = _hash(handle.algorithm.hash)
                handle.material.verify(
                    signature,
                    data,
                    asym_padding.PSS(mgf=asym_padding.MGF1(h), salt_length=params.get("saltLength", 32)),
                    h,
                )
                return True
            if name == "ECDSA":
                size = _curve_size(handle.algorithm.named_curve)
                if len(signature) != 2 * size:
                    return False
                r = int.from_bytes(signature[:size], "big")
                s = int.from_bytes(signature[size:], "big")
                handle.material.verify(
                    utils.encode_dss_signature(r, s), data, ec.ECDSA(_hash(params.get("hash", "SHA-256")))
                )
                return True
            if name == "HMAC":
                mac = hmac.HMAC(handle.material, _hash(handle.algorithm.hash))
                mac.update(data)
                mac.verify(signature)
                return True
        except InvalidSignature:
            return False
        raise ProviderRejected(f"Verification not supported for algorithm: {name}")


__all__ = ["CryptographyProvider", "PERMITTED_USAGES", "CURVES", "HASHES", "jwk_alg"]

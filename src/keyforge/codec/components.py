"""Canonical key components (the JWK-shaped intermediate form).

Every SSH-family encoder works from these numeric fields rather than from a
provider handle, so the only provider calls are a JWK export on the way out
and a JWK import on the way back in.
"""
from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any, Dict, FrozenSet, Iterable, Mapping, Union

from ..crypto.handles import AlgorithmDescriptor, CryptoProvider, KeyHandle
from ..errors import MalformedContainer, UnsupportedKeyType
from .wire import b64url_decode, b64url_encode

RSA_PRIVATE_FIELDS = ("d", "p", "q", "dp", "dq", "qi")
EC_CURVES = ("P-256", "P-384", "P-521")

# private usage -> the public usage it pairs with
PUBLIC_COUNTERPART = {
    "decrypt": "encrypt",
    "sign": "verify",
    "unwrapKey": "wrapKey",
}


@dataclass(frozen=True)
class RsaComponents:
    n: str
    e: str
    d: str | None = None
    p: str | None = None
    q: str | None = None
    dp: str | None = None
    dq: str | None = None
    qi: str | None = None

    def __post_init__(self):
        present = [f for f in RSA_PRIVATE_FIELDS if getattr(self, f) is not None]
        if present and len(present) != len(RSA_PRIVATE_FIELDS):
            missing = [f for f in RSA_PRIVATE_FIELDS if f not in present]
            raise MalformedContainer(f"RSA private components missing: {', '.join(missing)}")

    @property
    def is_private(self) -> bool:
        return self.d is not None

    @property
    def modulus_bits(self) -> int:
        return int.from_bytes(b64url_decode(self.n), "big").bit_length()

    def public(self) -> "RsaComponents":
        return RsaComponents(n=self.n, e=self.e)

    def to_jwk(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"kty": "RSA"}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is not None:
                out[f.name] = value
        return out


@dataclass(frozen=True)
class EcComponents:
    crv: str
    x: str
    y: str
    d: str | None = None

    def __post_init__(self):
        if self.crv not in EC_CURVES:
            raise MalformedContainer(f"Unsupported EC curve: {self.crv}")

    @property
    def is_private(self) -> bool:
        return self.d is not None

    @property
    def ssh_curve_name(self) -> str:
        return f"nistp{self.crv[2:]}"

    def point(self) -> bytes:
        """Uncompressed SEC1 point ``0x04 || X || Y``."""
        return b"\x04" + b64url_decode(self.x) + b64url_decode(self.y)

    def public(self) -> "EcComponents":
        return EcComponents(crv=self.crv, x=self.x, y=self.y)

    def to_jwk(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"kty": "EC", "crv": self.crv, "x": self.x, "y": self.y}
        if self.d is not None:
            out["d"] = self.d
        return out


@dataclass(frozen=True)
class OctComponents:
    k: bytes

    @property
    def is_private(self) -> bool:
        return False

    def to_jwk(self) -> Dict[str, Any]:
        return {"kty": "oct", "k": b64url_encode(self.k)}


KeyComponents = Union[RsaComponents, EcComponents, OctComponents]


def _need(jwk: Mapping[str, Any], *names: str) -> None:
    missing = [n for n in names if not jwk.get(n)]
    if missing:
        raise MalformedContainer(f"JWK is missing {', '.join(missing)}")


def from_jwk(jwk: Mapping[str, Any]) -> KeyComponents:
    kty = jwk.get("kty")
    if kty == "RSA":
        _need(jwk, "n", "e")
        return RsaComponents(n=jwk["n"], e=jwk["e"], **{f: jwk.get(f) for f in RSA_PRIVATE_FIELDS})
    if kty == "EC":
        _need(jwk, "crv", "x", "y")
        return EcComponents(crv=jwk["crv"], x=jwk["x"], y=jwk["y"], d=jwk.get("d"))
    if kty == "oct":
        _need(jwk, "k")
        return OctComponents(k=b64url_decode(jwk["k"]))
    raise UnsupportedKeyType("canonical components", f"kty={kty!r}")


async def export_components(provider: CryptoProvider, handle: KeyHandle) -> KeyComponents:
    jwk = await provider.export_key("jwk", handle)
    return from_jwk(jwk)


def reimport_algorithm(
    components: KeyComponents, usages: Iterable[str], hash_name: str = "SHA-256"
) -> AlgorithmDescriptor:
    """Pick the algorithm personality for components from the usages they will carry.

    RSA: sign/verify -> RSA-PSS, otherwise RSA-OAEP.
    EC: deriveKey/deriveBits -> ECDH, otherwise ECDSA.
    Symmetric components carry no personality and must be given one explicitly.
    """
    usages = set(usages)
    if isinstance(components, RsaComponents):
        name = "RSA-PSS" if usages & {"sign", "verify"} else "RSA-OAEP"
        return AlgorithmDescriptor(name=name, hash=hash_name)
    if isinstance(components, EcComponents):
        name = "ECDH" if usages & {"deriveKey", "deriveBits"} else "ECDSA"
        return AlgorithmDescriptor(name=name, named_curve=components.crv)
    raise UnsupportedKeyType("re-import", "symmetric components need an explicit algorithm")


def public_usages(usages: Iterable[str]) -> FrozenSet[str]:
    """Map a private key's usages onto those its public half would carry."""
    out = set()
    for u in usages:
        if u in PUBLIC_COUNTERPART:
            out.add(PUBLIC_COUNTERPART[u])
        elif u not in ("deriveKey", "deriveBits"):
            out.add(u)
    return frozenset(out)


async def import_components(
    provider: CryptoProvider,
    components: KeyComponents,
    usages: Iterable[str],
    algorithm: AlgorithmDescriptor | None = None,
    extractable: bool = True,
) -> KeyHandle:
    usages = frozenset(usages)
    if algorithm is None:
        algorithm = reimport_algorithm(components, usages)
    return await provider.import_key("jwk", components.to_jwk(), algorithm, extractable, usages)


__all__ = [
    "RsaComponents",
    "EcComponents",
    "OctComponents",
    "KeyComponents",
    "from_jwk",
    "export_components",
    "reimport_algorithm",
    "public_usages",
    "import_components",
]

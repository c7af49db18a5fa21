import asyncio

import pytest

from keyforge.codec.components import (
    EcComponents,
    OctComponents,
    RsaComponents,
    export_components,
    from_jwk,
    import_components,
    public_usages,
    reimport_algorithm,
)
from keyforge.errors import MalformedContainer, UnsupportedKeyType


def test_rsa_partial_private_rejected():
    with pytest.raises(MalformedContainer):
        RsaComponents(n="AQAB", e="AQAB", d="AQ")


def test_unknown_curve_rejected():
    with pytest.raises(MalformedContainer):
        EcComponents(crv="secp256k1", x="AA", y="AA")


def test_from_jwk_dispatch():
    assert isinstance(from_jwk({"kty": "oct", "k": "AAAA"}), OctComponents)
    with pytest.raises(UnsupportedKeyType):
        from_jwk({"kty": "OKP", "crv": "Ed25519", "x": "AA"})
    with pytest.raises(MalformedContainer):
        from_jwk({"kty": "RSA", "n": "AQAB"})


def test_export_components_matches_key(provider, rsa_pss_pair, ecdsa_pair):
    rsa = asyncio.run(export_components(provider, rsa_pss_pair.private_key))
    assert rsa.is_private
    assert rsa.modulus_bits == 2048
    assert rsa.public() == asyncio.run(export_components(provider, rsa_pss_pair.public_key))

    ec = asyncio.run(export_components(provider, ecdsa_pair.private_key))
    assert ec.ssh_curve_name == "nistp256"
    assert len(ec.point()) == 65
    assert ec.point()[0] == 0x04


@pytest.mark.parametrize(
    "usages,expected",
    [({"sign"}, "RSA-PSS"), ({"verify"}, "RSA-PSS"), ({"decrypt"}, "RSA-OAEP"), (set(), "RSA-OAEP")],
)
def test_reimport_algorithm_rsa(usages, expected):
    assert reimport_algorithm(RsaComponents(n="AQAB", e="AQAB"), usages).name == expected


def test_reimport_algorithm_ec():
    ec = EcComponents(crv="P-384", x="AA", y="AA")
    assert reimport_algorithm(ec, {"deriveBits"}).name == "ECDH"
    assert reimport_algorithm(ec, {"sign"}).named_curve == "P-384"
    with pytest.raises(UnsupportedKeyType):
        reimport_algorithm(OctComponents(k=b"\x00" * 16), {"encrypt"})


def test_public_usages():
    assert public_usages({"sign"}) == {"verify"}
    assert public_usages({"decrypt", "unwrapKey"}) == {"encrypt", "wrapKey"}
    assert public_usages({"deriveKey", "deriveBits"}) == frozenset()


def test_import_components_roundtrip(provider, ecdsa_pair):
    comps = asyncio.run(export_components(provider, ecdsa_pair.private_key))
    handle = asyncio.run(import_components(provider, comps, {"sign"}))
    assert handle.kind == "private"
    assert handle.algorithm.name == "ECDSA"
    assert asyncio.run(export_components(provider, handle)) == comps

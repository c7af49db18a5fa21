import asyncio

import pytest

from keyforge.crypto.handles import AlgorithmDescriptor
from keyforge.errors import ProviderRejected

from conftest import generate


def test_usages_are_intersected_per_kind(rsa_oaep_pair):
    assert rsa_oaep_pair.public_key.usages == {"encrypt"}
    assert rsa_oaep_pair.private_key.usages == {"decrypt"}
    assert rsa_oaep_pair.public_key.extractable is True


def test_ecdh_public_has_no_usages(ecdh_pair):
    assert ecdh_pair.public_key.usages == frozenset()
    assert ecdh_pair.private_key.usages == {"deriveKey", "deriveBits"}


def test_private_key_without_usable_usages_rejected(provider):
    with pytest.raises(ProviderRejected):
        generate(provider, "ECDSA", {"encrypt"}, named_curve="P-256")


def test_bad_aes_length_rejected(provider):
    with pytest.raises(ProviderRejected):
        generate(provider, "AES-GCM", {"encrypt"}, length=100)


def test_hmac_default_length_is_block_size(provider):
    key = generate(provider, "HMAC", {"sign", "verify"}, hash="SHA-512")
    assert key.algorithm.length == 1024
    assert len(asyncio.run(provider.export_key("raw", key))) == 128


def test_jwk_export_members(provider, rsa_pss_pair, ecdsa_pair):
    jwk = asyncio.run(provider.export_key("jwk", rsa_pss_pair.private_key))
    assert jwk["kty"] == "RSA"
    assert jwk["alg"] == "PS256"
    assert jwk["key_ops"] == ["sign"]
    assert jwk["ext"] is True
    assert {"n", "e", "d", "p", "q", "dp", "dq", "qi"} <= set(jwk)

    ec_jwk = asyncio.run(provider.export_key("jwk", ecdsa_pair.public_key))
    assert ec_jwk["crv"] == "P-256"
    assert ec_jwk["alg"] == "ES256"
    assert "d" not in ec_jwk


def test_jwk_import_checks(provider, ecdsa_pair):
    jwk = asyncio.run(provider.export_key("jwk", ecdsa_pair.public_key))
    wrong_curve = AlgorithmDescriptor(name="ECDSA", named_curve="P-384")
    with pytest.raises(ProviderRejected):
        asyncio.run(provider.import_key("jwk", jwk, wrong_curve, True, {"verify"}))

    # usages beyond key_ops are refused
    right = AlgorithmDescriptor(name="ECDSA", named_curve="P-256")
    with pytest.raises(ProviderRejected):
        asyncio.run(provider.import_key("jwk", jwk, right, True, {"sign", "verify"}))

    locked = dict(jwk, ext=False)
    with pytest.raises(ProviderRejected):
        asyncio.run(provider.import_key("jwk", locked, right, True, {"verify"}))
    handle = asyncio.run(provider.import_key("jwk", locked, right, False, {"verify"}))
    assert handle.extractable is False


def test_rsa_jwk_alg_must_match_hash(provider, rsa_oaep_pair):
    jwk = asyncio.run(provider.export_key("jwk", rsa_oaep_pair.public_key))
    with pytest.raises(ProviderRejected):
        asyncio.run(provider.import_key("jwk", jwk, AlgorithmDescriptor(name="RSA-OAEP", hash="SHA-384"),
                                        True, {"encrypt"}))


def test_non_extractable_export_rejected(provider):
    key = asyncio.run(provider.generate_key(AlgorithmDescriptor(name="AES-CBC", length=128), False, {"encrypt"}))
    with pytest.raises(ProviderRejected):
        asyncio.run(provider.export_key("raw", key))


def test_spki_requires_public(provider, ecdsa_pair):
    with pytest.raises(ProviderRejected):
        asyncio.run(provider.export_key("spki", ecdsa_pair.private_key))


def test_ecdsa_signature_is_r_concat_s(provider, ecdsa_pair):
    sig = asyncio.run(provider.sign(ecdsa_pair.private_key, {"hash": "SHA-256"}, b"hello"))
    assert len(sig) == 64
    assert asyncio.run(provider.verify(ecdsa_pair.public_key, {"hash": "SHA-256"}, sig, b"hello")) is True
    assert asyncio.run(provider.verify(ecdsa_pair.public_key, {"hash": "SHA-256"}, sig, b"hellO")) is False


def test_operation_requires_usage(provider, rsa_oaep_pair):
    with pytest.raises(ProviderRejected):
        asyncio.run(provider.sign(rsa_oaep_pair.private_key, {}, b"x"))


def test_gcm_tamper_is_provider_rejected(provider, aes_key):
    iv = b"\x00" * 12
    ct = asyncio.run(provider.encrypt(aes_key, {"iv": iv}, b"secret"))
    tampered = bytes([ct[0] ^ 1]) + ct[1:]
    with pytest.raises(ProviderRejected):
        asyncio.run(provider.decrypt(aes_key, {"iv": iv}, tampered))

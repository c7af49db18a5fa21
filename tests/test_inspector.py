import asyncio

import pytest

from keyforge.crypto.handles import AlgorithmDescriptor, KeyHandle, PgpKey
from keyforge.errors import UnsupportedKeyType
from keyforge.inspector import inspect_key, inspect_pgp, personality

from conftest import generate


def _inspect(key, provider):
    return asyncio.run(inspect_key(key, provider))


def _relabel(handle, usages):
    return KeyHandle(handle.kind, handle.algorithm, handle.extractable, frozenset(usages), handle.material)


def test_rsa_pss_private(provider, rsa_pss_pair):
    props = _inspect(rsa_pss_pair.private_key, provider)
    assert props.type == "private"
    assert props.algorithm == "RSA-PSS (SHA-256)"
    assert props.size == "2048 bits"
    assert props.usages == ("sign",)
    assert props.extractable is True


def test_rsa_oaep_public(provider, rsa_oaep_pair):
    props = _inspect(rsa_oaep_pair.public_key, provider)
    assert props.algorithm == "RSA-OAEP (SHA-256)"
    assert props.usages == ("encrypt",)


def test_sign_checked_before_encrypt(provider, rsa_oaep_pair):
    mixed = _relabel(rsa_oaep_pair.public_key, {"encrypt", "verify"})
    assert personality(mixed) == "RSA-PSS"


def test_empty_usages_keep_provider_name(ecdh_pair, provider):
    assert personality(ecdh_pair.public_key) == "ECDH"
    assert personality(_relabel(ecdh_pair.public_key, set())) == "ECDH"
    props = _inspect(ecdh_pair.public_key, provider)
    assert props.size == "P-384"
    assert props.usages == ()


def test_ec_personalities(ecdsa_pair, ecdh_pair):
    assert personality(ecdsa_pair.private_key) == "ECDSA"
    assert personality(ecdh_pair.private_key) == "ECDH"


def test_symmetric_sizes(provider, aes_key):
    assert _inspect(aes_key, provider).size == "256 bits"
    assert _inspect(aes_key, provider).type == "secret"
    hmac_key = generate(provider, "HMAC", {"sign", "verify"}, hash="SHA-384")
    props = _inspect(hmac_key, provider)
    assert props.algorithm == "HMAC"
    assert props.size == "1024 bits"
    assert props.usages == ("sign", "verify")


def test_inspection_is_stable(provider, ecdsa_pair):
    assert _inspect(ecdsa_pair.private_key, provider) == _inspect(ecdsa_pair.private_key, provider)


def test_non_extractable_uses_descriptor(provider):
    key = asyncio.run(provider.generate_key(AlgorithmDescriptor(name="AES-CTR", length=192), False,
                                            {"encrypt", "decrypt"}))
    props = _inspect(key, provider)
    assert props.extractable is False
    assert props.size == "192 bits"
    assert props.algorithm == "AES-CTR"


def test_pgp_key():
    private = inspect_pgp(PgpKey(is_private=True, algorithm="rsa", armored="", bits=4096))
    assert private.algorithm == "PGP/RSA"
    assert private.size == "4096 bits"
    assert private.usages == ("decrypt", "sign")

    public = inspect_pgp(PgpKey(is_private=False, algorithm="eddsa", armored="", curve="Ed25519"))
    assert public.type == "public"
    assert public.size == "Ed25519"
    assert public.usages == ("encrypt", "verify")

    assert inspect_pgp(PgpKey(is_private=False, algorithm="", armored="")).size == "N/A"


def test_unknown_object(provider):
    with pytest.raises(UnsupportedKeyType):
        _inspect(object(), provider)

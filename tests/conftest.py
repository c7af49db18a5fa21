import asyncio
import hashlib

import pytest

from keyforge.config import Settings
from keyforge.crypto.handles import AlgorithmDescriptor, PgpKey, PgpKeyPair
from keyforge.crypto.webcrypto import CryptographyProvider
from keyforge.errors import MalformedContainer, ProviderRejected
from keyforge.service import KeyService

FAKE_MARKER = "FAKE-PGP"


class RecordingProvider(CryptographyProvider):
    """Real provider that remembers every import attempt, in order."""

    def __init__(self):
        self.imports = []

    async def import_key(self, form, material, algorithm, extractable, usages):
        self.imports.append((form, algorithm.name, algorithm.length or algorithm.named_curve or algorithm.hash))
        return await super().import_key(form, material, algorithm, extractable, usages)


def fake_armor(kind: str, body: str = FAKE_MARKER) -> str:
    return f"-----BEGIN PGP {kind} KEY BLOCK-----\n\n{body}\n-----END PGP {kind} KEY BLOCK-----"


class FakePgpProvider:
    """In-memory stand-in for the PGP engine."""

    def __init__(self):
        self.read_calls = []

    async def generate_key(self, options, key_type, rsa_bits=None, curve=None):
        return PgpKeyPair(
            public_armored=fake_armor("PUBLIC", f"{FAKE_MARKER} {options.email}"),
            private_armored=fake_armor("PRIVATE", f"{FAKE_MARKER} {options.email}"),
            key_id="0123456789ABCDEF",
        )

    async def read_key(self, armored):
        self.read_calls.append(armored)
        if FAKE_MARKER not in armored:
            raise MalformedContainer("not a PGP key")
        private = "PRIVATE KEY BLOCK" in armored
        return PgpKey(is_private=private, algorithm="rsa", armored=armored, key_id="0123456789ABCDEF", bits=4096)

    async def encrypt(self, key, text):
        return f"-----BEGIN PGP MESSAGE-----\n{text[::-1]}\n-----END PGP MESSAGE-----"

    async def decrypt(self, key, armored_message, passphrase=None):
        if not key.is_private:
            raise ProviderRejected("private key required")
        return armored_message.split("\n")[1][::-1]

    async def sign(self, key, text, passphrase=None):
        return f"-----BEGIN PGP SIGNATURE-----\n{hashlib.sha256(text.encode()).hexdigest()}\n-----END PGP SIGNATURE-----"

    async def verify(self, key, armored_signature, text):
        if "BEGIN PGP SIGNATURE" not in armored_signature:
            raise MalformedContainer("not a signature")
        return hashlib.sha256(text.encode()).hexdigest() in armored_signature


def generate(provider, name, usages, **params):
    return asyncio.run(provider.generate_key(AlgorithmDescriptor(name=name, **params), True, usages))


@pytest.fixture
def provider():
    return CryptographyProvider()


@pytest.fixture
def recording_provider():
    return RecordingProvider()


@pytest.fixture
def fake_pgp():
    return FakePgpProvider()


@pytest.fixture
def settings():
    return Settings(ssh_comment="test@host")


@pytest.fixture
def service(provider, fake_pgp, settings):
    return KeyService(provider, fake_pgp, settings)


# RSA generation is slow; share one pair of each personality per session.


@pytest.fixture(scope="session")
def rsa_pss_pair():
    return generate(CryptographyProvider(), "RSA-PSS", {"sign", "verify"}, hash="SHA-256", modulus_length=2048,
                    public_exponent=65537)


@pytest.fixture(scope="session")
def rsa_oaep_pair():
    return generate(CryptographyProvider(), "RSA-OAEP", {"encrypt", "decrypt"}, hash="SHA-256", modulus_length=2048,
                    public_exponent=65537)


@pytest.fixture(scope="session")
def ecdsa_pair():
    return generate(CryptographyProvider(), "ECDSA", {"sign", "verify"}, named_curve="P-256")


@pytest.fixture(scope="session")
def ecdh_pair():
    return generate(CryptographyProvider(), "ECDH", {"deriveKey", "deriveBits"}, named_curve="P-384")


@pytest.fixture
def aes_key(provider):
    return generate(provider, "AES-GCM", {"encrypt", "decrypt"}, length=256)

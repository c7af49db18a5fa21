"""Key generation, export, import and inspection in one place.

``KeyService`` wires the provider, the optional PGP engine and the runtime
settings into the codec functions. It holds no key state of its own: every
method works on the keys it is handed and returns fresh values.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

from .codec import encoders, openssh, putty, sniffer
from .codec.components import KeyComponents, export_components, import_components, public_usages, reimport_algorithm
from .codec.encoders import KeyFormat, SerializedKey
from .config import Settings, load_settings
from .crypto import cipher, sign
from .crypto.alg_registry import parse_algorithm_option
from .crypto.handles import AnyKey, CryptoProvider, KeyHandle, KeyPair, PgpKey, PgpOptions, PgpProvider
from .errors import PgpUnavailable, UnsupportedKeyType
from .inspector import KeyProperties, inspect_key
from .utils.logging import get_logger

logger = get_logger(__name__)

_PUBLIC_FORMATS = (KeyFormat.PEM_SPKI, KeyFormat.JWK_PUBLIC, KeyFormat.SSH_PUBLIC)


@dataclass(frozen=True)
class SymmetricKeyResult:
    key: KeyHandle
    display_value: str
    type: Literal["symmetric"] = "symmetric"


@dataclass(frozen=True)
class AsymmetricKeyResult:
    key_pair: KeyPair
    display_value: str
    type: Literal["asymmetric"] = "asymmetric"


@dataclass(frozen=True)
class PgpKeyResult:
    public_key: str
    private_key: str
    key_id: str
    display_value: str
    type: Literal["pgp"] = "pgp"


KeyGenerationResult = Union[SymmetricKeyResult, AsymmetricKeyResult, PgpKeyResult]


@dataclass(frozen=True)
class ImportResult:
    key: AnyKey
    properties: KeyProperties


class KeyService:
    def __init__(
        self,
        provider: CryptoProvider,
        pgp: PgpProvider | None = None,
        settings: Settings | None = None,
    ):
        self.provider = provider
        self.pgp = pgp
        self.settings = settings or load_settings()

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(self, option: str, pgp_options: PgpOptions | None = None) -> KeyGenerationResult:
        plan = parse_algorithm_option(option, self.settings.rsa_public_exponent)

        if plan.kind == "pgp":
            if self.pgp is None:
                raise PgpUnavailable("No PGP engine configured.")
            if pgp_options is None:
                raise ValueError("PGP user information is required for key generation.")
            pair = await self.pgp.generate_key(pgp_options, plan.pgp_type, plan.pgp_bits, plan.pgp_curve)
            logger.info("generated %s (key id %s)", option, pair.key_id)
            return PgpKeyResult(pair.public_armored, pair.private_armored, pair.key_id, pair.public_armored)

        generated = await self.provider.generate_key(plan.descriptor, self.settings.extractable, plan.usages)
        logger.info("generated %s", option)

        if plan.kind == "symmetric":
            # non-extractable secrets have nothing to show
            display = await encoders.export_raw_base64(self.provider, generated) if generated.extractable else ""
            return SymmetricKeyResult(generated, display)
        if plan.kind == "ssh":
            display = await openssh.export_ssh_public(self.provider, generated.public_key, self.settings.ssh_comment)
        else:
            display = await encoders.export_pem_public(self.provider, generated.public_key)
        return AsymmetricKeyResult(generated, display)

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    async def export_key(self, key: AnyKey, fmt: KeyFormat | str, comment: str | None = None) -> SerializedKey:
        fmt = KeyFormat(fmt)
        comment = self.settings.ssh_comment if comment is None else comment

        if isinstance(key, PgpKey):
            if fmt is not KeyFormat.PGP_ARMORED:
                raise UnsupportedKeyType(f"{fmt.value} export", "PGP keys only export as armored text.")
            return SerializedKey(format=fmt, text=key.armored)
        if not isinstance(key, KeyHandle):
            raise UnsupportedKeyType(f"{fmt.value} export")

        p = self.provider
        if fmt is KeyFormat.PEM_SPKI:
            text = await encoders.export_pem_public(p, key)
        elif fmt is KeyFormat.PEM_PKCS8:
            text = await encoders.export_pem_private(p, key)
        elif fmt is KeyFormat.JWK:
            text = await encoders.export_jwk(p, key)
        elif fmt is KeyFormat.JWK_PUBLIC:
            text = await encoders.export_jwk_public(p, key)
        elif fmt is KeyFormat.RAW_BASE64:
            text = await encoders.export_raw_base64(p, key)
        elif fmt is KeyFormat.RAW_HEX:
            text = await encoders.export_raw_hex(p, key)
        elif fmt is KeyFormat.SSH_PUBLIC:
            text = await openssh.export_ssh_public(p, key, comment)
        elif fmt is KeyFormat.OPENSSH_PRIVATE:
            text = await openssh.export_openssh_private(p, key, comment)
        elif fmt is KeyFormat.PUTTY_PPK:
            text = await putty.export_ppk(p, key, comment)
        else:
            raise UnsupportedKeyType(f"{fmt.value} export", "Only PGP keys export as armored text.")
        return SerializedKey(format=fmt, text=text)

    async def export_generated(
        self, result: KeyGenerationResult, fmt: KeyFormat | str, comment: str | None = None, private: bool = False
    ) -> SerializedKey:
        """Export the half of a generation result that ``fmt`` calls for."""
        fmt = KeyFormat(fmt)
        if isinstance(result, PgpKeyResult):
            if fmt is not KeyFormat.PGP_ARMORED:
                raise UnsupportedKeyType(f"{fmt.value} export", "PGP keys only export as armored text.")
            return SerializedKey(format=fmt, text=result.private_key if private else result.public_key)
        if isinstance(result, SymmetricKeyResult):
            return await self.export_key(result.key, fmt, comment)
        pair = result.key_pair
        if fmt in _PUBLIC_FORMATS or (fmt is KeyFormat.JWK and not private):
            return await self.export_key(pair.public_key, fmt, comment)
        return await self.export_key(pair.private_key, fmt, comment)

    # ------------------------------------------------------------------
    # Import / inspect
    # ------------------------------------------------------------------

    async def import_key(self, text: str) -> AnyKey:
        key = await sniffer.import_key(text, self.provider, self.pgp)
        logger.info("imported %s key", "PGP" if isinstance(key, PgpKey) else key.algorithm.name)
        return key

    async def inspect(self, key: AnyKey) -> KeyProperties:
        return await inspect_key(key, self.provider)

    async def import_and_inspect(self, text: str) -> ImportResult:
        key = await self.import_key(text)
        return ImportResult(key, await self.inspect(key))

    async def import_ssh_key(self, text: str) -> KeyHandle:
        """Import an OpenSSH private key, a PuTTY ``.ppk`` or an SSH public key line.

        SSH keys are signing keys: RSA comes back as RSA-PSS/SHA-256 and EC as
        ECDSA, with ``sign`` on private and ``verify`` on public handles.
        """
        components = parse_ssh_components(text)
        usages = {"sign"} if components.is_private else {"verify"}
        handle = await import_components(
            self.provider, components, usages, extractable=self.settings.extractable
        )
        logger.info("imported SSH %s key", handle.algorithm.name)
        return handle

    async def public_handle_for(self, handle: KeyHandle) -> KeyHandle:
        if handle.kind == "public":
            return handle
        if handle.kind != "private":
            raise UnsupportedKeyType("public key derivation", "Symmetric keys have no public half.")
        components = await export_components(self.provider, handle)
        algorithm = reimport_algorithm(components, handle.usages, handle.algorithm.hash or "SHA-256")
        return await import_components(
            self.provider, components.public(), public_usages(handle.usages), algorithm=algorithm
        )

    # ------------------------------------------------------------------
    # Text operations
    # ------------------------------------------------------------------

    async def encrypt_text(self, key: AnyKey, plaintext: str) -> str:
        return await cipher.encrypt_text(key, plaintext, self.provider, self.pgp)

    async def decrypt_text(self, key: AnyKey, ciphertext: str, passphrase: str | None = None) -> str:
        return await cipher.decrypt_text(key, ciphertext, self.provider, self.pgp, passphrase)

    async def sign_text(self, key: AnyKey, message: str, passphrase: str | None = None) -> str:
        return await sign.sign_text(key, message, self.provider, self.pgp, passphrase)

    async def verify_text(self, key: AnyKey, signature: str, message: str) -> bool:
        return await sign.verify_text(key, signature, message, self.provider, self.pgp)


def is_ssh_container(text: str) -> bool:
    text = text.strip()
    return (
        text.startswith(openssh.OPENSSH_HEADER)
        or text.startswith(putty.PPK_VERSION_HEADER)
        or text.startswith(("ssh-rsa ", "ecdsa-sha2-"))
    )


def parse_ssh_components(text: str) -> KeyComponents:
    text = text.strip()
    if text.startswith(openssh.OPENSSH_HEADER):
        return openssh.parse_openssh_private(text).components
    if text.startswith(putty.PPK_VERSION_HEADER):
        return putty.parse_ppk(text).components
    return openssh.parse_ssh_public(text).components


__all__ = [
    "SymmetricKeyResult",
    "AsymmetricKeyResult",
    "PgpKeyResult",
    "KeyGenerationResult",
    "ImportResult",
    "KeyService",
    "is_ssh_container",
    "parse_ssh_components",
]

"""Algorithm registry for key generation.

Generation options are flat strings, one per selectable algorithm/size pair:

  AES-<bits>-<mode>             AES-256-GCM, AES-128-CBC, AES-192-CTR
  RSA-OAEP-SHA-<hash>-<bits>    RSA-OAEP-SHA-256-2048
  RSA-PSS-<bits>                RSA-PSS-4096 (always SHA-256)
  ECDSA-P-<curve> / ECDH-P-<curve>
  HMAC-SHA-<hash>
  SSH-RSA-<bits>                RSA-PSS/SHA-256 signing pair shown as an SSH line
  SSH-ECDSA-P<curve>            ECDSA pair shown as an SSH line
  PGP-RSA-<bits> / PGP-ECC-<curve>

``parse_algorithm_option`` turns one of these into a ``GenerationPlan`` the
orchestration layer hands to the provider. The tables below are read-only and
mirror what the interactive tool offers.
"""
from __future__ import annotations

from dataclasses import dataclass
from types import MappingProxyType
from typing import FrozenSet, Literal, Mapping, Tuple

from .handles import AlgorithmDescriptor

PlanKind = Literal["symmetric", "asymmetric", "ssh", "pgp"]

DEFAULT_PUBLIC_EXPONENT = 65537


@dataclass(frozen=True)
class AlgorithmOption:
    value: str
    label: str
    group: str
    description: str


@dataclass(frozen=True)
class UsageGroup:
    group: str
    short_description: str
    title: str
    description: str


@dataclass(frozen=True)
class GenerationPlan:
    option: str
    kind: PlanKind
    descriptor: AlgorithmDescriptor | None
    usages: FrozenSet[str]
    pgp_type: str | None = None
    pgp_bits: int | None = None
    pgp_curve: str | None = None


ALGORITHM_OPTIONS: Tuple[AlgorithmOption, ...] = (
    AlgorithmOption("AES-128-GCM", "AES-128-GCM", "Symmetric Encryption",
                    "Modern, fast, authenticated encryption. Recommended for general use."),
    AlgorithmOption("AES-192-GCM", "AES-192-GCM", "Symmetric Encryption",
                    "Modern, fast, authenticated encryption with a larger key size for increased security."),
    AlgorithmOption("AES-256-GCM", "AES-256-GCM", "Symmetric Encryption",
                    "Modern, fast, authenticated encryption with a very large key size for top-tier security."),
    AlgorithmOption("AES-128-CBC", "AES-128-CBC", "Symmetric Encryption",
                    "A legacy encryption mode. Lacks built-in authentication; GCM is generally preferred."),
    AlgorithmOption("AES-192-CBC", "AES-192-CBC", "Symmetric Encryption",
                    "A legacy encryption mode with a larger key size. Lacks built-in authentication."),
    AlgorithmOption("AES-256-CBC", "AES-256-CBC", "Symmetric Encryption",
                    "A legacy encryption mode with a very large key size. Lacks built-in authentication."),
    AlgorithmOption("AES-128-CTR", "AES-128-CTR", "Symmetric Encryption",
                    "Turns the block cipher into a stream cipher. Fast, but provides no authentication."),
    AlgorithmOption("AES-192-CTR", "AES-192-CTR", "Symmetric Encryption",
                    "A stream cipher mode with a larger key size. Provides no authentication."),
    AlgorithmOption("AES-256-CTR", "AES-256-CTR", "Symmetric Encryption",
                    "A stream cipher mode with a very large key size. Provides no authentication."),
    AlgorithmOption("RSA-OAEP-SHA-256", "RSA-OAEP (SHA-256)", "Asymmetric Encryption",
                    "RSA encryption using the SHA-256 hash function. Recommended for general use."),
    AlgorithmOption("RSA-OAEP-SHA-384", "RSA-OAEP (SHA-384)", "Asymmetric Encryption",
                    "RSA encryption using the SHA-384 hash function for a higher level of security."),
    AlgorithmOption("RSA-OAEP-SHA-512", "RSA-OAEP (SHA-512)", "Asymmetric Encryption",
                    "RSA encryption using the SHA-512 hash function for the highest level of security."),
    AlgorithmOption("SSH-RSA", "SSH RSA", "SSH Authentication",
                    "Legacy-compatible RSA key for SSH. ECDSA is recommended for modern systems."),
    AlgorithmOption("SSH-ECDSA", "SSH ECDSA", "SSH Authentication",
                    "Modern, fast, and secure elliptic curve key for SSH. Recommended for most uses."),
    AlgorithmOption("ECDSA", "ECDSA", "Digital Signatures",
                    "The modern standard for digital signatures, offering strong security with small keys."),
    AlgorithmOption("RSA-PSS", "RSA-PSS", "Digital Signatures",
                    "The modern standard for robust RSA digital signatures."),
    AlgorithmOption("ECDH", "ECDH", "Key Agreement",
                    "Allows two parties to securely establish a shared secret for symmetric encryption."),
    AlgorithmOption("HMAC-SHA-256", "HMAC (SHA-256)", "Message Authentication",
                    "Verifies message integrity and authenticity using a shared secret key and SHA-256."),
    AlgorithmOption("HMAC-SHA-384", "HMAC (SHA-384)", "Message Authentication",
                    "A more secure version of HMAC using the SHA-384 hash algorithm."),
    AlgorithmOption("HMAC-SHA-512", "HMAC (SHA-512)", "Message Authentication",
                    "The most secure HMAC option, using the SHA-512 hash algorithm."),
    AlgorithmOption("PGP-ECC-curve25519", "PGP ECC (Curve25519)", "PGP / GPG",
                    "Modern, fast Elliptic Curve PGP key (Curve25519) for signing and encryption. Recommended."),
    AlgorithmOption("PGP-RSA", "PGP RSA", "PGP / GPG",
                    "RSA-based PGP key for signing and encryption. Widely compatible."),
)

_RSA_SIZES = (("2048", "2048 bits"), ("4096", "4096 bits"))
_EC_SIZES = (("P-256", "NIST P-256"), ("P-384", "NIST P-384"), ("P-521", "NIST P-521"))
_SSH_EC_SIZES = (("P256", "NIST P-256"), ("P384", "NIST P-384"), ("P521", "NIST P-521"))

KEY_SIZE_OPTIONS: Mapping[str, Tuple[Tuple[str, str], ...]] = MappingProxyType({
    "RSA-OAEP-SHA-256": _RSA_SIZES,
    "RSA-OAEP-SHA-384": _RSA_SIZES,
    "RSA-OAEP-SHA-512": _RSA_SIZES,
    "RSA-PSS": _RSA_SIZES,
    "ECDSA": _EC_SIZES,
    "ECDH": _EC_SIZES,
    "SSH-RSA": _RSA_SIZES,
    "SSH-ECDSA": _SSH_EC_SIZES,
    "PGP-RSA": (("4096", "4096 bits"),),
})

_P256_TEXT = "Equivalent to ~3072-bit RSA security. Excellent performance and widely supported. Recommended for most new applications."
_P384_TEXT = "Equivalent to ~7680-bit RSA security. Provides a very high level of security for sensitive data."
_P521_TEXT = "Equivalent to ~15360-bit RSA security. The highest level of security available, often used for top-secret or long-term archival purposes."

KEY_SIZE_DESCRIPTIONS: Mapping[str, str] = MappingProxyType({
    "2048": "Standard security level for RSA keys, suitable for most applications. Resistant to attacks with current computing power.",
    "4096": "High security level, recommended for long-term data protection or meeting stringent compliance requirements (e.g., CNSA Suite).",
    "P-256": _P256_TEXT,
    "P-384": _P384_TEXT,
    "P-521": _P521_TEXT,
    "P256": _P256_TEXT,
    "P384": _P384_TEXT,
    "P521": _P521_TEXT,
})

USAGE_GROUPS: Tuple[UsageGroup, ...] = (
    UsageGroup("Symmetric Encryption", "Fast, single-key encryption.", "About Symmetric Encryption",
               "Uses a single secret key to both encrypt and decrypt data. This method is very fast and is ideal "
               "for securing large amounts of data at rest or in transit, provided the key can be shared securely "
               "between parties."),
    UsageGroup("Asymmetric Encryption", "Two-key (public/private) encryption.", "About Asymmetric Encryption",
               "Uses a key pair: a public key to encrypt data and a private key to decrypt it. Anyone can use the "
               "public key to encrypt a message, but only the holder of the private key can decrypt and read it."),
    UsageGroup("SSH Authentication", "Passwordless server access.", "About SSH Authentication",
               "Generates a key pair for use with the Secure Shell (SSH) protocol. The public key is placed on a "
               "server, allowing the holder of the private key to authenticate securely without needing a password."),
    UsageGroup("Digital Signatures", "Verify authenticity & integrity.", "About Digital Signatures",
               "Uses a private key to sign data and the corresponding public key to verify the signature. This "
               "ensures the data's authenticity (proving it came from the key holder) and integrity (proving it "
               "hasn't been altered)."),
    UsageGroup("Key Agreement", "Securely establish a shared secret.", "About Key Agreement",
               "Allows two parties, each with their own key pair, to establish a shared secret over an insecure "
               "channel. This shared secret can then be used for fast and efficient symmetric encryption."),
    UsageGroup("Message Authentication", "Verify message source & integrity.",
               "About Message Authentication (HMAC)",
               "Uses a secret key to generate a Hash-based Message Authentication Code (HMAC). This code is sent "
               "along with the message to verify both its integrity and authenticity, ensuring it was not tampered "
               "with and originated from a trusted source."),
    UsageGroup("PGP / GPG", "Encrypt & sign emails/files.", "About PGP / GPG",
               "Generates an OpenPGP key pair used for encrypting and signing emails, files, and other data. The "
               "public key is shared so others can encrypt messages for you, while the private key (protected by a "
               "passphrase) is used for decryption and signing."),
)

AES_LENGTHS = (128, 192, 256)
AES_MODES = ("GCM", "CBC", "CTR")
RSA_BITS = (2048, 4096)
EC_CURVES = ("P-256", "P-384", "P-521")
SHA_VARIANTS = ("SHA-256", "SHA-384", "SHA-512")

_ENCRYPT = frozenset({"encrypt", "decrypt"})
_SIGN = frozenset({"sign", "verify"})
_DERIVE = frozenset({"deriveKey", "deriveBits"})


def supported_options() -> Tuple[str, ...]:
    """Every concrete option string ``parse_algorithm_option`` accepts."""
    out = [f"AES-{n}-{m}" for m in AES_MODES for n in AES_LENGTHS]
    out += [f"RSA-OAEP-{h}-{b}" for h in SHA_VARIANTS for b in RSA_BITS]
    out += [f"ECDSA-{c}" for c in EC_CURVES]
    out += [f"RSA-PSS-{b}" for b in RSA_BITS]
    out += [f"ECDH-{c}" for c in EC_CURVES]
    out += [f"HMAC-{h}" for h in SHA_VARIANTS]
    out += [f"SSH-RSA-{b}" for b in RSA_BITS]
    out += [f"SSH-ECDSA-{c.replace('-', '')}" for c in EC_CURVES]
    out += ["PGP-RSA-4096", "PGP-ECC-curve25519"]
    return tuple(out)


def _int(part: str, option: str) -> int:
    try:
        return int(part, 10)
    except ValueError:
        raise ValueError(f"Unsupported algorithm: {option}") from None


def parse_algorithm_option(option: str, public_exponent: int = DEFAULT_PUBLIC_EXPONENT) -> GenerationPlan:
    parts = option.split("-")
    head = parts[0]

    if head == "PGP" and len(parts) == 3:
        if parts[1] == "RSA":
            return GenerationPlan(option, "pgp", None, frozenset(), pgp_type="rsa",
                                  pgp_bits=_int(parts[2], option))
        if parts[1] == "ECC":
            return GenerationPlan(option, "pgp", None, frozenset(), pgp_type="ecc", pgp_curve=parts[2])
        raise ValueError(f"Unsupported PGP key type: {parts[1]}")

    if head == "AES" and len(parts) == 3 and parts[2] in AES_MODES:
        desc = AlgorithmDescriptor(name=f"AES-{parts[2]}", length=_int(parts[1], option))
        return GenerationPlan(option, "symmetric", desc, _ENCRYPT)

    if head == "RSA" and len(parts) >= 3:
        name = f"RSA-{parts[1]}"
        if name == "RSA-OAEP" and len(parts) == 5:
            hash_name = f"{parts[2]}-{parts[3]}"
            bits = _int(parts[4], option)
        elif len(parts) == 3 and name in ("RSA-OAEP", "RSA-PSS"):
            hash_name = "SHA-256"
            bits = _int(parts[2], option)
        else:
            raise ValueError(f"Unsupported algorithm: {option}")
        desc = AlgorithmDescriptor(name=name, hash=hash_name, modulus_length=bits,
                                   public_exponent=public_exponent)
        return GenerationPlan(option, "asymmetric", desc, _ENCRYPT if name == "RSA-OAEP" else _SIGN)

    if head in ("ECDSA", "ECDH") and len(parts) == 3 and parts[1] == "P":
        desc = AlgorithmDescriptor(name=head, named_curve=f"P-{parts[2]}")
        return GenerationPlan(option, "asymmetric", desc, _SIGN if head == "ECDSA" else _DERIVE)

    if head == "HMAC" and len(parts) == 3:
        desc = AlgorithmDescriptor(name="HMAC", hash=f"SHA-{parts[2]}")
        return GenerationPlan(option, "symmetric", desc, _SIGN)

    if head == "SSH" and len(parts) == 3:
        if parts[1] == "RSA":
            desc = AlgorithmDescriptor(name="RSA-PSS", hash="SHA-256", modulus_length=_int(parts[2], option),
                                       public_exponent=public_exponent)
            return GenerationPlan(option, "ssh", desc, _SIGN)
        if parts[1] == "ECDSA" and parts[2].startswith("P"):
            desc = AlgorithmDescriptor(name="ECDSA", named_curve=f"P-{parts[2][1:]}")
            return GenerationPlan(option, "ssh", desc, _SIGN)
        raise ValueError(f"Unsupported SSH key type: {parts[1]}")

    raise ValueError(f"Unsupported algorithm: {option}")


__all__ = [
    "AlgorithmOption",
    "UsageGroup",
    "GenerationPlan",
    "ALGORITHM_OPTIONS",
    "KEY_SIZE_OPTIONS",
    "KEY_SIZE_DESCRIPTIONS",
    "USAGE_GROUPS",
    "supported_options",
    "parse_algorithm_option",
]

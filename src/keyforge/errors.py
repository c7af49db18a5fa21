"""Error kinds raised by the key codec layer.

Every failure is scoped to the single operation that raised it; nothing in
here is fatal to the process.
"""
from __future__ import annotations

from typing import List, Tuple


class KeyforgeError(Exception):
    """Base class for all keyforge errors."""


class UnsupportedKeyType(KeyforgeError):
    """An encoder (or operation) was handed a key family it does not handle."""

    def __init__(self, target: str, detail: str | None = None):
        self.target = target
        msg = f"Unsupported key type for {target}."
        if detail:
            msg = f"{msg} {detail}"
        super().__init__(msg)


class UnsupportedKeyFormat(KeyforgeError):
    """The sniffer exhausted every candidate without recognising the blob."""


class ProviderRejected(KeyforgeError):
    """The cryptographic provider rejected the parameters or the material.

    ``attempts`` lists ``(candidate, reason)`` pairs when the rejection is the
    result of exhausting a speculative candidate list.
    """

    def __init__(self, message: str, attempts: List[Tuple[str, str]] | None = None):
        super().__init__(message)
        self.attempts = list(attempts or [])


class IntegrityMismatch(KeyforgeError):
    """A container's integrity check (MAC, checkint pair) did not match."""


class MalformedContainer(KeyforgeError):
    """Framing was recognised but the payload does not decode."""


class PgpUnavailable(KeyforgeError):
    """Raised when a PGP operation is requested but PGPy is not installed."""


__all__ = [
    "KeyforgeError",
    "UnsupportedKeyType",
    "UnsupportedKeyFormat",
    "ProviderRejected",
    "IntegrityMismatch",
    "MalformedContainer",
    "PgpUnavailable",
]

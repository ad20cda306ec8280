"""Parsing of user-supplied addresses and private keys."""

from __future__ import annotations

import base58
from solders.keypair import Keypair
from solders.pubkey import Pubkey

PUBKEY_LENGTH = 32
SECRET_KEY_LENGTH = 64


class InputError(RuntimeError):
    """Raised when user input is not a valid address or key."""


def _b58decode(value: str, label: str) -> bytes:
    try:
        return base58.b58decode(value.strip())
    except ValueError as exc:
        raise InputError(f"{label} is not valid base58") from exc


def parse_pubkey(value: str, label: str = "Address") -> Pubkey:
    """Return ``value`` as a :class:`Pubkey` or raise :class:`InputError`."""

    if not value or not value.strip():
        raise InputError(f"{label} must not be empty")
    raw = _b58decode(value, label)
    if len(raw) != PUBKEY_LENGTH:
        raise InputError(f"{label} must decode to {PUBKEY_LENGTH} bytes, got {len(raw)}")
    return Pubkey(raw)


def keypair_from_base58(secret: str) -> Keypair:
    """Build a keypair from a base58 encoded 64-byte secret key."""

    if not secret or not secret.strip():
        raise InputError("Private key must not be empty")
    raw = _b58decode(secret, "Private key")
    if len(raw) != SECRET_KEY_LENGTH:
        raise InputError(f"Private key must decode to {SECRET_KEY_LENGTH} bytes")
    try:
        keypair = Keypair.from_bytes(raw)
    except ValueError as exc:
        raise InputError(f"Private key is not a valid ed25519 keypair: {exc}") from exc
    if bytes(keypair.pubkey()) != raw[PUBKEY_LENGTH:]:
        raise InputError("Private key does not match its embedded public key")
    return keypair

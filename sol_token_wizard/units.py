"""Conversion helpers between SOL and lamports."""

from __future__ import annotations

from decimal import ROUND_DOWN, Decimal

LAMPORTS_PER_SOL = 1_000_000_000
_LAMPORT = Decimal(1).scaleb(-9)


def lamports_to_sol(lamports: int) -> Decimal:
    """Return ``lamports`` as an exact SOL amount."""

    return (Decimal(int(lamports)) / LAMPORTS_PER_SOL).quantize(_LAMPORT)


def sol_to_lamports(amount: Decimal | str | int) -> int:
    """Convert a SOL amount to integer lamports, truncating sub-lamport dust."""

    value = Decimal(str(amount)) if not isinstance(amount, Decimal) else amount
    return int((value * LAMPORTS_PER_SOL).to_integral_value(rounding=ROUND_DOWN))


def format_sol(amount: Decimal) -> str:
    """Render a SOL amount with the full nine decimal places."""

    return f"{amount:.9f}"

"""Recent transaction history for a wallet."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, List

from .rpc_client import RPCTransportError
from .units import lamports_to_sol

logger = logging.getLogger(__name__)


@dataclass
class TransactionRecord:
    timestamp: datetime
    signature: str
    amount: Decimal


def net_amount(meta: dict[str, Any]) -> Decimal:
    """Return the SOL change of the first balance slot (the fee payer)."""

    try:
        pre = int(meta["preBalances"][0])
        post = int(meta["postBalances"][0])
    except (KeyError, IndexError, TypeError, ValueError) as exc:
        raise RPCTransportError("Transaction meta is missing pre/post balances") from exc
    return lamports_to_sol(post - pre)


def record_from_transaction(detail: dict[str, Any] | None) -> TransactionRecord | None:
    """Build a record from ``getTransaction`` output.

    Returns ``None`` for unknown transactions and for those without a block
    time yet.
    """

    if detail is None:
        return None
    if not isinstance(detail, dict):
        raise RPCTransportError("getTransaction returned a non-object result")
    block_time = detail.get("blockTime")
    if block_time is None:
        return None
    try:
        signature = str(detail["transaction"]["signatures"][0])
        meta = detail["meta"]
    except (KeyError, IndexError, TypeError) as exc:
        raise RPCTransportError("Transaction detail is missing signatures or meta") from exc
    return TransactionRecord(
        timestamp=datetime.fromtimestamp(int(block_time), tz=timezone.utc),
        signature=signature,
        amount=net_amount(meta),
    )


def fetch_recent_transactions(rpc, address: str, limit: int = 10) -> List[TransactionRecord]:
    """Fetch and decode up to ``limit`` recent transactions for ``address``."""

    records: List[TransactionRecord] = []
    for signature in rpc.list_recent_signatures(address, limit):
        record = record_from_transaction(rpc.get_transaction(signature))
        if record is None:
            logger.debug("Skipping %s: not finalized or unknown", signature)
            continue
        records.append(record)
    return records


def format_history_table(records: Iterable[TransactionRecord]) -> str:
    lines = [
        f"{'Date/time (UTC)':<30} {'Signature':<25} {'Amount (SOL)':<10}",
        "-" * 65,
    ]
    for record in records:
        stamp = record.timestamp.strftime("%Y-%m-%d %H:%M:%S UTC")
        amount = format(record.amount.normalize(), "f")
        lines.append(f"{stamp:<30} {record.signature:<25} {amount:<10}")
    return "\n".join(lines)

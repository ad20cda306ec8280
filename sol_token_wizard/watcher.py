"""Deposit watcher polling a wallet balance until it is funded."""

from __future__ import annotations

import logging
import threading
import time
from decimal import Decimal
from typing import Callable, Protocol

from .units import lamports_to_sol, sol_to_lamports

logger = logging.getLogger(__name__)


class BalanceSource(Protocol):
    def get_balance_lamports(self, address: str) -> int:  # pragma: no cover - protocol
        ...


class DepositTimeout(RuntimeError):
    """Raised when the deadline passes before the wallet is funded."""


class DepositCancelled(RuntimeError):
    """Raised when the caller cancels the wait."""


class DepositWatcher:
    """Block until an address holds at least a minimum balance.

    The balance is compared in lamports so a threshold such as 0.002 SOL is
    matched exactly at 2,000,000 lamports. Polling happens every
    ``poll_interval_seconds`` without backoff. With no ``deadline`` and no
    ``cancel`` event the wait is unbounded.
    """

    def __init__(
        self,
        rpc: BalanceSource,
        poll_interval_seconds: float = 1.0,
        *,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if poll_interval_seconds <= 0:
            raise ValueError("poll_interval_seconds must be positive")
        self.rpc = rpc
        self.poll_interval_seconds = poll_interval_seconds
        self._sleep = sleep
        self._clock = clock

    def wait_for_deposit(
        self,
        address: str,
        min_balance: Decimal,
        *,
        deadline: float | None = None,
        cancel: threading.Event | None = None,
        on_reading: Callable[[Decimal], None] | None = None,
    ) -> int:
        """Poll ``address`` until it holds ``min_balance`` SOL; return lamports seen.

        ``deadline`` is a number of seconds from now. Ledger errors propagate
        to the caller unchanged.
        """

        threshold = sol_to_lamports(min_balance)
        started = self._clock()
        polls = 0
        logger.info("Waiting for %s to hold at least %s lamports", address, threshold)
        while True:
            if cancel is not None and cancel.is_set():
                raise DepositCancelled(f"Deposit wait for {address} was cancelled")
            lamports = self.rpc.get_balance_lamports(address)
            polls += 1
            logger.debug("Poll %d: %s holds %d lamports", polls, address, lamports)
            if on_reading is not None:
                on_reading(lamports_to_sol(lamports))
            if lamports >= threshold:
                logger.info("Deposit observed for %s after %d polls", address, polls)
                return lamports
            if deadline is not None and self._clock() - started >= deadline:
                raise DepositTimeout(
                    f"{address} did not reach {min_balance} SOL within {deadline:g}s"
                )
            self._sleep(self.poll_interval_seconds)

import threading
from decimal import Decimal

import pytest

from sol_token_wizard.units import sol_to_lamports
from sol_token_wizard.watcher import DepositCancelled, DepositTimeout, DepositWatcher


class SequenceRPC:
    def __init__(self, readings_sol: list[str]) -> None:
        self.readings = [sol_to_lamports(Decimal(value)) for value in readings_sol]
        self.calls = 0

    def get_balance_lamports(self, address: str) -> int:
        value = self.readings[min(self.calls, len(self.readings) - 1)]
        self.calls += 1
        return value


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds

    def monotonic(self) -> float:
        return self.now


def _watcher(rpc, clock: FakeClock, interval: float = 1.0) -> DepositWatcher:
    return DepositWatcher(rpc, interval, sleep=clock.sleep, clock=clock.monotonic)


def test_returns_after_third_reading() -> None:
    rpc = SequenceRPC(["0", "0.001", "0.0025"])
    clock = FakeClock()
    seen: list[Decimal] = []

    lamports = _watcher(rpc, clock).wait_for_deposit(
        "Wallet", Decimal("0.002"), on_reading=seen.append
    )

    assert rpc.calls == 3
    assert lamports == 2_500_000
    assert clock.sleeps == [1.0, 1.0]
    assert seen == [Decimal("0"), Decimal("0.001"), Decimal("0.0025")]


def test_threshold_is_inclusive_in_lamports() -> None:
    rpc = SequenceRPC(["0.002"])
    clock = FakeClock()

    lamports = _watcher(rpc, clock).wait_for_deposit("Wallet", Decimal("0.002"))

    assert lamports == 2_000_000
    assert rpc.calls == 1
    assert clock.sleeps == []


def test_one_lamport_short_keeps_polling() -> None:
    rpc = SequenceRPC(["0.001999999", "0.002000000"])
    clock = FakeClock()

    _watcher(rpc, clock).wait_for_deposit("Wallet", Decimal("0.002"))

    assert rpc.calls == 2


def test_deadline_raises_timeout() -> None:
    rpc = SequenceRPC(["0"])
    clock = FakeClock()

    with pytest.raises(DepositTimeout):
        _watcher(rpc, clock).wait_for_deposit("Wallet", Decimal("0.002"), deadline=3)

    assert rpc.calls == 4


def test_cancel_event_stops_waiting() -> None:
    rpc = SequenceRPC(["0"])
    cancel = threading.Event()
    clock = FakeClock()

    def sleep_then_cancel(seconds: float) -> None:
        clock.sleep(seconds)
        cancel.set()

    watcher = DepositWatcher(rpc, 1.0, sleep=sleep_then_cancel, clock=clock.monotonic)

    with pytest.raises(DepositCancelled):
        watcher.wait_for_deposit("Wallet", Decimal("0.002"), cancel=cancel)

    assert rpc.calls == 1


def test_rejects_non_positive_interval() -> None:
    with pytest.raises(ValueError):
        DepositWatcher(SequenceRPC(["0"]), 0)

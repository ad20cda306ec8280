"""Workflow state for the token wizard and its on-disk record.

Each step of the wizard is its own dataclass carrying exactly the fields that
step needs, so a ``Done`` state without a token address cannot be built. On
disk the state is the flat record::

    {"step": "create_token", "pubkey": "...", "token_name": null, ...}

which keeps files written by earlier versions of the wizard loadable.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Union

logger = logging.getLogger(__name__)

STEP_START = "start"
STEP_AWAIT_DEPOSIT = "await_deposit"
STEP_CREATE_TOKEN = "create_token"
STEP_DONE = "done"

RECORD_FIELDS = (
    "pubkey",
    "token_name",
    "token_symbol",
    "token_address",
    "account_address",
)


class StateFileError(RuntimeError):
    """Raised when the persisted state cannot be read or written."""


@dataclass(frozen=True)
class Start:
    step = STEP_START


@dataclass(frozen=True)
class AwaitDeposit:
    pubkey: str
    step = STEP_AWAIT_DEPOSIT


@dataclass(frozen=True)
class CreateToken:
    pubkey: str
    step = STEP_CREATE_TOKEN


@dataclass(frozen=True)
class Done:
    pubkey: str
    token_name: str
    token_symbol: str
    token_address: str
    account_address: str
    step = STEP_DONE


WorkflowState = Union[Start, AwaitDeposit, CreateToken, Done]


def state_to_record(state: WorkflowState) -> dict[str, Any]:
    """Flatten ``state`` into the persisted record shape."""

    record: dict[str, Any] = {"step": state.step}
    for name in RECORD_FIELDS:
        record[name] = getattr(state, name, None)
    return record


def _require(record: dict[str, Any], step: str, *names: str) -> list[str]:
    values = []
    for name in names:
        value = record.get(name)
        if not isinstance(value, str) or not value:
            raise StateFileError(f"State step {step!r} requires a non-empty {name!r}")
        values.append(value)
    return values


def state_from_record(record: Any) -> WorkflowState:
    """Rebuild a step object from a persisted record, validating consistency."""

    if not isinstance(record, dict):
        raise StateFileError("State file must contain a JSON object")
    unknown = set(record) - {"step", *RECORD_FIELDS}
    if unknown:
        raise StateFileError(f"Unknown state fields: {', '.join(sorted(unknown))}")
    for name in RECORD_FIELDS:
        value = record.get(name)
        if value is not None and not isinstance(value, str):
            raise StateFileError(f"State field {name!r} must be a string or null")

    step = record.get("step")
    if step == STEP_START:
        return Start()
    if step == STEP_AWAIT_DEPOSIT:
        (pubkey,) = _require(record, step, "pubkey")
        return AwaitDeposit(pubkey=pubkey)
    if step == STEP_CREATE_TOKEN:
        (pubkey,) = _require(record, step, "pubkey")
        return CreateToken(pubkey=pubkey)
    if step == STEP_DONE:
        pubkey, name, symbol, token, account = _require(record, step, *RECORD_FIELDS)
        return Done(
            pubkey=pubkey,
            token_name=name,
            token_symbol=symbol,
            token_address=token,
            account_address=account,
        )
    raise StateFileError(f"Unknown workflow step: {step!r}")


class StateStore:
    """Load and save the workflow state at a fixed path."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> WorkflowState:
        """Return the persisted state, or ``Start()`` when no file exists.

        A file that exists but cannot be parsed is an error; it is never
        replaced by a fresh state.
        """

        if not self.path.exists():
            logger.debug("No state file at %s; starting fresh", self.path)
            return Start()
        try:
            raw = self.path.read_text(encoding="utf-8")
        except OSError as exc:
            raise StateFileError(f"Could not read state file {self.path}: {exc}") from exc
        try:
            record = json.loads(raw)
        except ValueError as exc:
            raise StateFileError(f"State file {self.path} is not valid JSON: {exc}") from exc
        state = state_from_record(record)
        logger.info("Loaded workflow state %s from %s", state.step, self.path)
        return state

    def save(self, state: WorkflowState) -> Path:
        """Write ``state`` to disk, replacing any previous file."""

        tmp_path = self.path.with_name(self.path.name + ".tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(json.dumps(state_to_record(state), indent=2), encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as exc:
            raise StateFileError(f"Could not write state file {self.path}: {exc}") from exc
        logger.info("Saved workflow state %s to %s", state.step, self.path)
        return self.path

    def clear(self) -> bool:
        """Delete the state file; return whether one existed."""

        try:
            self.path.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StateFileError(f"Could not remove state file {self.path}: {exc}") from exc
        return True

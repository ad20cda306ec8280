"""Solana token wizard package."""

from .config import WizardConfig, load_wizard_config
from .state import (
    AwaitDeposit,
    CreateToken,
    Done,
    Start,
    StateFileError,
    StateStore,
    WorkflowState,
)
from .watcher import DepositCancelled, DepositTimeout, DepositWatcher
from .workflow import TokenWorkflow

__all__ = [
    "WizardConfig",
    "load_wizard_config",
    "AwaitDeposit",
    "CreateToken",
    "Done",
    "Start",
    "StateFileError",
    "StateStore",
    "WorkflowState",
    "DepositCancelled",
    "DepositTimeout",
    "DepositWatcher",
    "TokenWorkflow",
]

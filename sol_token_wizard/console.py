"""Interactive ASCII console for the Solana token wizard."""

from __future__ import annotations

import getpass
import os
import sys
import textwrap
import traceback
from typing import Sequence

from .commands import CommandError, CommandRunner
from .config import ConfigurationError, WizardConfig, load_wizard_config
from .history import fetch_recent_transactions, format_history_table
from .keys import InputError, parse_pubkey
from .metadata import MetadataError
from .rpc_client import RPCError, RPCTransportError, SolanaRPCClient
from .state import StateFileError, StateStore, WorkflowState
from .units import format_sol
from .watcher import DepositCancelled, DepositTimeout
from .workflow import TokenWorkflow

ACTION_ERRORS = (
    CommandError,
    ConfigurationError,
    DepositCancelled,
    DepositTimeout,
    InputError,
    MetadataError,
    RPCError,
    RPCTransportError,
    StateFileError,
)


def prompt_str(prompt: str, default: str | None = None, allow_empty: bool = False) -> str:
    """Prompt for a string value, honoring an optional default."""

    suffix = f" [{default}]" if default is not None else ""
    while True:
        raw = input(f"{prompt}{suffix}: ").strip()
        if raw:
            return raw
        if default is not None:
            return default
        if allow_empty:
            return ""
        print("Please enter a value or provide a default.")


def _should_debug() -> bool:
    return bool(int(os.environ.get("SOL_WIZARD_DEBUG", "0") or "0"))


def _pause(message: str = "Press Enter to return to the menu...") -> None:
    input(message)


class ConsolePrompter:
    """Terminal implementation of the wizard's prompt boundary."""

    def choose(self, prompt: str, options: Sequence[str]) -> int:
        print(prompt)
        for index, option in enumerate(options, start=1):
            print(f"  [{index}] {option}")
        while True:
            raw = input("Selection [1]: ").strip() or "1"
            if raw.isdigit() and 1 <= int(raw) <= len(options):
                return int(raw) - 1
            print("Invalid selection, please try again.")

    def ask(self, prompt: str, default: str | None = None, allow_empty: bool = False) -> str:
        return prompt_str(prompt, default=default, allow_empty=allow_empty)

    def ask_secret(self, prompt: str) -> str:
        return getpass.getpass(f"{prompt}: ")

    def show(self, message: str) -> None:
        print(message)


def handle_balance_history(rpc: SolanaRPCClient, config: WizardConfig, prompter: ConsolePrompter) -> None:
    """Show a wallet's balance followed by its recent transactions."""

    address = str(parse_pubkey(prompter.ask("Wallet public key"), "Wallet address"))
    prompter.show("Querying balance and transactions...")
    balance = rpc.get_balance(address)
    records = fetch_recent_transactions(rpc, address, config.history_limit)
    prompter.show(f"Current balance of wallet {address}: {format_sol(balance)} SOL")
    prompter.show("Transactions:")
    prompter.show(format_history_table(records))


def _render_menu(state: WorkflowState) -> None:
    print(
        "=" * 37
        + "\nSolana Token Wizard\n"
        + "=" * 37
        + f"\nWorkflow step: {state.step}\n"
        + textwrap.dedent(
            """
            [1] Check wallet balance and transactions
            [2] Create token
            [Q] Quit
            --------
            """
        )
    )


def _report_failure(action: str, exc: Exception) -> None:
    if _should_debug():
        traceback.print_exc()
    print(f"{action} failed: {exc}", file=sys.stderr)


def console_main(
    config: WizardConfig | None = None,
    *,
    rpc: SolanaRPCClient | None = None,
    runner: CommandRunner | None = None,
    store: StateStore | None = None,
    prompter: ConsolePrompter | None = None,
) -> WorkflowState:
    """Launch the interactive console and return the final workflow state.

    A failed action aborts the console with exit status 1; the state file, if
    already written, lets the next run resume.
    """

    config = config or load_wizard_config()
    rpc = rpc or SolanaRPCClient(config)
    runner = runner or CommandRunner(config)
    store = store or StateStore(config.state_path)
    prompter = prompter or ConsolePrompter()
    workflow = TokenWorkflow(config, rpc, runner, store, prompter)

    state = store.load()
    while True:
        _render_menu(state)
        selection = input("Select an option: ").strip().lower()
        if selection in {"q", "quit", "3"}:
            print("Exiting... goodbye!")
            return state
        if selection == "1":
            try:
                handle_balance_history(rpc, config, prompter)
            except ACTION_ERRORS as exc:
                _report_failure("Balance query", exc)
                raise SystemExit(1) from exc
            _pause()
        elif selection == "2":
            try:
                state = workflow.run(state)
            except ACTION_ERRORS as exc:
                _report_failure("Token creation", exc)
                raise SystemExit(1) from exc
            _pause()
        else:
            print("Invalid selection, please try again.\n")


if __name__ == "__main__":
    console_main()

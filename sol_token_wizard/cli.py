"""Command line interface for the Solana token wizard."""

from __future__ import annotations

"""Command-line entry point.

``console`` (the default) starts the interactive wizard; the remaining
subcommands expose the read-only views and state housekeeping without the
menu so they can be scripted.
"""

import argparse
import json
import logging
import sys
from typing import Sequence

from .commands import CommandError
from .config import ConfigurationError, load_wizard_config, set_default_config_path
from .history import fetch_recent_transactions, format_history_table
from .keys import InputError, parse_pubkey
from .metadata import MetadataError
from .rpc_client import RPCError, RPCTransportError, SolanaRPCClient
from .state import StateFileError, StateStore, state_to_record
from .units import format_sol

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


class CLIError(RuntimeError):
    """Raised when CLI arguments are invalid."""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Solana token wizard")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("console", help="Launch the interactive wizard (default)")

    balance_parser = subparsers.add_parser("balance", help="Print a wallet's SOL balance")
    balance_parser.add_argument("address", help="Wallet public key (base58)")

    history_parser = subparsers.add_parser(
        "history", help="Print a wallet's recent transactions"
    )
    history_parser.add_argument("address", help="Wallet public key (base58)")
    history_parser.add_argument(
        "--limit",
        type=int,
        default=None,
        help="Number of signatures to inspect (defaults to history_limit)",
    )

    subparsers.add_parser("state", help="Print the persisted workflow state as JSON")
    subparsers.add_parser("reset-state", help="Delete the persisted workflow state")
    return parser


def _validated_address(raw: str) -> str:
    return str(parse_pubkey(raw, "Wallet address"))


def cmd_balance(args: argparse.Namespace, rpc: SolanaRPCClient) -> None:
    address = _validated_address(args.address)
    print(f"{format_sol(rpc.get_balance(address))} SOL")


def cmd_history(args: argparse.Namespace, rpc: SolanaRPCClient, default_limit: int) -> None:
    address = _validated_address(args.address)
    limit = args.limit if args.limit is not None else default_limit
    if limit <= 0:
        raise CLIError("--limit must be positive")
    print(format_history_table(fetch_recent_transactions(rpc, address, limit)))


def cmd_state(store: StateStore) -> None:
    print(json.dumps(state_to_record(store.load()), indent=2))


def cmd_reset_state(store: StateStore) -> None:
    if store.clear():
        print(f"Removed {store.path}")
    else:
        print(f"No state file at {store.path}")


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)
    command = args.command or "console"
    try:
        if args.config:
            set_default_config_path(args.config)
        config = load_wizard_config()
        store = StateStore(config.state_path)
        if command == "console":
            from .console import console_main

            console_main(config, store=store)
        elif command == "balance":
            cmd_balance(args, SolanaRPCClient(config))
        elif command == "history":
            cmd_history(args, SolanaRPCClient(config), config.history_limit)
        elif command == "state":
            cmd_state(store)
        elif command == "reset-state":
            cmd_reset_state(store)
        else:  # pragma: no cover - argparse enforces choices
            raise CLIError(f"Unknown command: {command}")
    except KeyboardInterrupt:  # pragma: no cover - interactive use
        logger.info("Interrupted by user")
    except (
        CLIError,
        CommandError,
        ConfigurationError,
        InputError,
        MetadataError,
        RPCError,
        RPCTransportError,
        StateFileError,
    ) as exc:
        parser.exit(1, f"error: {exc}\n")


if __name__ == "__main__":
    main(sys.argv[1:])

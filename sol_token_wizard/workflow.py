"""The create-token wizard: wallet, deposit, token, metadata.

This module owns the step transitions shared by the interactive console and
tests. Steps advance strictly in order ``start -> await_deposit ->
create_token -> done``. The state is written to disk once, right after the
deposit is observed, so a restart never asks for funds twice. Any failure in
the ``create_token`` step propagates and leaves the persisted step at
``create_token``; the whole step then runs again on the next attempt.
Every answer for that step is collected and validated before the first
command runs, so bad input never leaves a half-created token behind.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Protocol, Sequence

from solders.keypair import Keypair
from solders.pubkey import Pubkey

from .commands import CommandRunner
from .config import WizardConfig
from .keys import InputError, keypair_from_base58, parse_pubkey
from .metadata import MetadataError, attach_metadata, check_metadata_fields, find_metadata_pda
from .state import AwaitDeposit, CreateToken, Done, Start, StateStore, WorkflowState
from .units import format_sol
from .watcher import DepositWatcher

logger = logging.getLogger(__name__)

WALLET_CHOICES = ["Create a new wallet", "Use an existing wallet"]
DONE_CHOICES = ["Start a new token", "Back to the menu"]


@dataclass(frozen=True)
class MetadataRequest:
    """Validated metadata inputs gathered before the token is created."""

    payer: Keypair
    uri: str
    metadata: Pubkey | None = None


class Prompter(Protocol):
    """Request/response boundary to the terminal."""

    def choose(self, prompt: str, options: Sequence[str]) -> int:  # pragma: no cover - protocol
        ...

    def ask(self, prompt: str, default: str | None = None, allow_empty: bool = False) -> str:  # pragma: no cover - protocol
        ...

    def ask_secret(self, prompt: str) -> str:  # pragma: no cover - protocol
        ...

    def show(self, message: str) -> None:  # pragma: no cover - protocol
        ...


class TokenWorkflow:
    """Drive one pass of the create-token wizard from any persisted step."""

    def __init__(
        self,
        config: WizardConfig,
        rpc,
        runner: CommandRunner,
        store: StateStore,
        prompter: Prompter,
        watcher: DepositWatcher | None = None,
    ) -> None:
        self.config = config
        self.rpc = rpc
        self.runner = runner
        self.store = store
        self.prompter = prompter
        self.watcher = watcher or DepositWatcher(rpc, config.poll_interval)

    def run(self, state: WorkflowState) -> WorkflowState:
        """Advance ``state`` as far as possible and return the new state."""

        if isinstance(state, Done):
            state = self.revisit_done(state)
            if isinstance(state, Done):
                return state
        if isinstance(state, Start):
            state = self.choose_wallet()
        if isinstance(state, AwaitDeposit):
            state = self.await_deposit(state)
            self.store.save(state)
        if isinstance(state, CreateToken):
            state = self.create_token(state)
        return state

    def revisit_done(self, state: Done) -> WorkflowState:
        self.prompter.show(
            f"Token {state.token_name} ({state.token_symbol}) was already created at "
            f"{state.token_address}."
        )
        choice = self.prompter.choose("What next?", DONE_CHOICES)
        if choice == 0:
            return Start()
        return state

    def choose_wallet(self) -> AwaitDeposit:
        choice = self.prompter.choose(
            "Create a new wallet or use an existing one?", WALLET_CHOICES
        )
        if choice == 0:
            self.prompter.show("Creating SOL wallet...")
            pubkey = self.runner.create_wallet()
            self.prompter.show(f"Your new public key is: {pubkey}")
        else:
            raw = self.prompter.ask("Public key of the existing wallet")
            pubkey = str(parse_pubkey(raw, "Wallet address"))
        logger.info("Workflow wallet set to %s", pubkey)
        return AwaitDeposit(pubkey=pubkey)

    def await_deposit(self, state: AwaitDeposit) -> CreateToken:
        minimum = self.config.min_deposit_sol
        self.prompter.show(
            f"Please deposit at least {minimum} SOL to {state.pubkey}.\n"
            "Waiting for the deposit..."
        )

        def report(balance: Decimal) -> None:
            self.prompter.show(f"Current balance of {state.pubkey}: {format_sol(balance)} SOL")

        self.watcher.wait_for_deposit(
            state.pubkey,
            minimum,
            deadline=self.config.deposit_timeout,
            on_reading=report,
        )
        self.prompter.show("Deposit received. Continuing...")
        return CreateToken(pubkey=state.pubkey)

    def create_token(self, state: CreateToken) -> Done:
        token_name = self.prompter.ask("Token name")
        token_symbol = self.prompter.ask("Token symbol")
        request = self.collect_metadata_details(token_name, token_symbol)

        token_address = self.runner.create_token()
        self.prompter.show(
            f"The address of your token {token_name} ({token_symbol}) is: {token_address}"
        )

        self.prompter.show("Creating token account...")
        account_address = self.runner.create_token_account(token_address)
        self.prompter.show(f"Your token account address is: {account_address}")

        self.prompter.show("Minting tokens...")
        self.runner.mint_tokens(token_address, self.config.mint_amount, state.pubkey)
        self.prompter.show(f"Minted {self.config.mint_amount:,} tokens to {account_address}")

        if request is None:
            self.prompter.show("No payer key given; skipping on-chain metadata.")
        else:
            self.attach_token_metadata(request, token_address, token_name, token_symbol)

        return Done(
            pubkey=state.pubkey,
            token_name=token_name,
            token_symbol=token_symbol,
            token_address=token_address,
            account_address=account_address,
        )

    def collect_metadata_details(self, token_name: str, token_symbol: str) -> MetadataRequest | None:
        """Prompt for and validate the metadata inputs before anything is minted.

        A blank private key means no on-chain metadata and returns ``None``.
        """

        self.prompter.show("Details required for the token metadata:")
        secret = self.prompter.ask_secret(
            "Payer private key (base58, leave blank to skip metadata)"
        )
        if not secret.strip():
            return None
        payer = keypair_from_base58(secret)
        del secret

        uri = self.prompter.ask(
            "Token URI (e.g. https://example.com/token.json)", default="https://"
        ).strip()
        if uri in {"", "https://", "http://"}:
            raise InputError("A token metadata URI is required")
        try:
            check_metadata_fields(token_name, token_symbol, uri)
        except MetadataError as exc:
            raise InputError(str(exc)) from exc

        raw_metadata = self.prompter.ask(
            "Metadata account address (Enter to derive it)", allow_empty=True
        )
        metadata = (
            parse_pubkey(raw_metadata, "Metadata account address") if raw_metadata.strip() else None
        )
        return MetadataRequest(payer=payer, uri=uri, metadata=metadata)

    def attach_token_metadata(
        self, request: MetadataRequest, token_address: str, token_name: str, token_symbol: str
    ) -> str:
        """Submit the metadata transaction; a missing account derives the canonical PDA."""

        mint = parse_pubkey(token_address, "Token address")
        metadata = request.metadata
        if metadata is None:
            metadata = find_metadata_pda(mint)
            self.prompter.show(f"Using metadata account {metadata}")

        signature = attach_metadata(
            self.rpc,
            payer=request.payer,
            mint=mint,
            metadata=metadata,
            name=token_name,
            symbol=token_symbol,
            uri=request.uri,
        )
        self.prompter.show(f"Token metadata created successfully ({signature})")
        return signature

"""Wrappers around the ``solana-keygen`` and ``spl-token`` command line tools.

The utilities print human-oriented text, so the addresses we need are scraped
from stdout. Each invocation returns a :class:`CommandResult`; the parsing
helpers are pure functions over that text and raise
:class:`MarkerNotFoundError` rather than returning an empty address.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from typing import Callable, Sequence

from .config import WizardConfig

logger = logging.getLogger(__name__)

PUBKEY_MARKER = "pubkey"
TOKEN_MARKER = "Creating token"
ACCOUNT_MARKER = "Creating account"


class CommandError(RuntimeError):
    """Base class for external command failures."""


class CommandNotFoundError(CommandError):
    """Raised when an executable cannot be launched."""


class CommandOutputError(CommandError):
    """Raised when a command's output does not look like a success."""


class MarkerNotFoundError(CommandOutputError):
    """Raised when the expected marker line is missing from stdout."""

    def __init__(self, marker: str, stdout: str) -> None:
        super().__init__(f"Expected a line containing {marker!r} in command output")
        self.marker = marker
        self.stdout = stdout


@dataclass
class CommandResult:
    """Exit status and captured streams of one command invocation."""

    args: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandFailedError(CommandError):
    """Raised when a command exits with a non-zero status."""

    def __init__(self, result: CommandResult) -> None:
        detail = result.stderr.strip() or result.stdout.strip() or "no output"
        super().__init__(
            f"{' '.join(result.args)} exited with status {result.returncode}: {detail}"
        )
        self.result = result


def _find_marker_line(stdout: str, marker: str) -> str:
    for line in stdout.splitlines():
        if marker in line:
            return line
    raise MarkerNotFoundError(marker, stdout)


def parse_pubkey(stdout: str) -> str:
    """Return the last token of the first line mentioning ``pubkey``."""

    parts = _find_marker_line(stdout, PUBKEY_MARKER).split()
    return parts[-1]


def _third_token(stdout: str, marker: str) -> str:
    parts = _find_marker_line(stdout, marker).split()
    if len(parts) < 3:
        raise MarkerNotFoundError(marker, stdout)
    return parts[2]


def parse_token_address(stdout: str) -> str:
    """Return the token address from ``spl-token create-token`` output."""

    return _third_token(stdout, TOKEN_MARKER)


def parse_account_address(stdout: str) -> str:
    """Return the account address from ``spl-token create-account`` output."""

    return _third_token(stdout, ACCOUNT_MARKER)


Executor = Callable[..., "subprocess.CompletedProcess[str]"]


class CommandRunner:
    """Run the Solana command line utilities and parse their results."""

    def __init__(
        self,
        config: WizardConfig | None = None,
        *,
        executor: Executor = subprocess.run,
        echo: Callable[[str], None] | None = print,
    ) -> None:
        self.config = config or WizardConfig()
        self._executor = executor
        self._echo = echo

    def run(self, args: Sequence[str]) -> CommandResult:
        """Run ``args`` and raise unless the command exits cleanly."""

        argv = [str(arg) for arg in args]
        logger.debug("Running command: %s", " ".join(argv))
        try:
            completed = self._executor(
                argv, capture_output=True, text=True, stdin=subprocess.DEVNULL
            )
        except FileNotFoundError as exc:
            raise CommandNotFoundError(
                f"{argv[0]} not found; install the Solana CLI tools and make sure they are on PATH"
            ) from exc
        except OSError as exc:
            raise CommandNotFoundError(f"Could not launch {argv[0]}: {exc}") from exc

        result = CommandResult(
            args=argv,
            returncode=completed.returncode,
            stdout=completed.stdout or "",
            stderr=completed.stderr or "",
        )
        if self._echo is not None and result.stdout:
            self._echo(result.stdout)
        if not result.ok:
            raise CommandFailedError(result)
        return result

    def create_wallet(self) -> str:
        result = self.run([self.config.keygen_bin, "new", "--no-bip39-passphrase"])
        return parse_pubkey(result.stdout)

    def create_token(self) -> str:
        result = self.run([self.config.spl_token_bin, "create-token"])
        return parse_token_address(result.stdout)

    def create_token_account(self, token_address: str) -> str:
        result = self.run([self.config.spl_token_bin, "create-account", token_address])
        return parse_account_address(result.stdout)

    def mint_tokens(self, token_address: str, amount: int, recipient: str) -> CommandResult:
        result = self.run([self.config.spl_token_bin, "mint", token_address, str(amount), recipient])
        if not result.stdout.strip():
            raise CommandOutputError(f"spl-token mint produced no output for {token_address}")
        return result

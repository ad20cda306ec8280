"""RPC client for interacting with a Solana JSON-RPC endpoint."""

from __future__ import annotations

"""Typed JSON-RPC client for Solana nodes.

The balance and history views only need the three read methods; the metadata
flow additionally needs rent, blockhash, submission and confirmation helpers.
Configuration comes from a ``WizardConfig`` so the console, the CLI and
library callers talk to the same endpoint. Every transport or decode failure
raises; nothing here retries.
"""

import base64
import logging
import time
import uuid
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests
from requests import RequestException, Response

from .config import ConfigurationError, WizardConfig
from .units import lamports_to_sol

logger = logging.getLogger(__name__)

_CONFIRMED_LEVELS = {"confirmed": 1, "finalized": 2}


class RPCError(RuntimeError):
    """Raised when the Solana node responds with a JSON-RPC error object."""

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"RPC error {code}: {message}")
        self.code = code
        self.message = message


class RPCTransportError(RuntimeError):
    """Raised when the RPC endpoint is unreachable or returns malformed data."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def format_rpc_hint(error_obj: dict[str, Any] | RPCError | None) -> str | None:
    """Return a human-friendly hint for common Solana JSON-RPC errors."""

    if error_obj is None:
        return None

    code = None
    message = ""
    if isinstance(error_obj, RPCError):
        code = error_obj.code
        message = error_obj.message
    elif isinstance(error_obj, dict):
        code = error_obj.get("code")
        message = str(error_obj.get("message", ""))

    lowered = message.lower()
    if code == -32602 or "invalid param" in lowered:
        return "The node rejected a parameter. Check that the address or signature is valid base58."
    if "insufficient funds" in lowered or "insufficient lamports" in lowered:
        return "The payer cannot cover fees and rent. Fund the wallet and retry."
    if "blockhash not found" in lowered:
        return "The blockhash expired before submission. Retry the operation."
    if code == 429 or "too many requests" in lowered:
        return "The public endpoint is rate limiting requests; set SOL_WIZARD_RPC_URL to a private endpoint."
    return None


class SolanaRPCClient:
    """Typed JSON-RPC client for a single Solana endpoint.

    Each helper maps directly to an RPC method exposed by the node and returns
    the parsed ``result`` member. The endpoint defaults to mainnet-beta and can
    be overridden with ``SOL_WIZARD_RPC_URL`` or the ``wizard.rpc_url`` key of
    ``~/.sol-token-wizard.yaml``.
    """

    def __init__(self, config: WizardConfig) -> None:
        self.config = config
        self._session = requests.Session()
        self._url = config.rpc_url
        self._timeout = config.request_timeout

    def call(self, method: str, params: Optional[list[Any]] = None) -> Any:
        """Perform a JSON-RPC request."""

        payload = {
            "jsonrpc": "2.0",
            "id": str(uuid.uuid4()),
            "method": method,
            "params": params or [],
        }
        logger.debug("RPC call %s params=%s", method, params)
        try:
            response = self._session.post(
                self._url,
                json=payload,
                headers={"content-type": "application/json"},
                timeout=self._timeout,
            )
        except RequestException as exc:
            logger.error(
                "RPC connection failed: %s",
                exc,
                exc_info=logger.isEnabledFor(logging.DEBUG),
            )
            raise RPCTransportError(
                "RPC connection failed. Ensure the Solana endpoint is reachable and "
                "SOL_WIZARD_RPC_URL (or ~/.sol-token-wizard.yaml) points to the right URL."
            ) from exc
        try:
            self._raise_for_status(response)
        except requests.HTTPError as exc:
            raise RPCTransportError(
                "RPC server returned an HTTP error; check the endpoint URL and SOL_WIZARD_RPC_URL.",
                status_code=response.status_code,
            ) from exc
        try:
            result = response.json()
        except ValueError as exc:
            logger.debug("RPC JSON parse error: %s", response.text, exc_info=True)
            raise RPCTransportError("RPC server returned malformed JSON") from exc
        if not isinstance(result, dict):
            raise RPCTransportError("RPC server returned a non-object JSON response")
        if result.get("error"):
            error = result["error"]
            if not isinstance(error, dict):
                raise RPCTransportError(f"RPC response for {method} has a malformed error member")
            raise RPCError(error.get("code", -1), error.get("message", "unknown"))
        if "result" not in result:
            raise RPCTransportError(f"RPC response for {method} has no result member")
        return result["result"]

    def _raise_for_status(self, response: Response) -> None:
        if not response.ok:
            try:
                err_body = response.json()
            except ValueError:
                err_body = response.text

            logger.error("RPC HTTP error %s from %s", response.status_code, response.url)
            logger.error("RPC error body: %s", err_body)
            if response.status_code == 429:
                raise RPCTransportError(
                    "Too many requests (429). The endpoint is rate limiting; retry later or configure a private RPC URL.",
                    status_code=response.status_code,
                )
        response.raise_for_status()

    # Read paths -----------------------------------------------------------

    def get_balance_lamports(self, address: str) -> int:
        result = self.call("getBalance", [address, {"commitment": self.config.commitment}])
        try:
            return int(result["value"])
        except (KeyError, TypeError, ValueError) as exc:
            raise RPCTransportError(f"Malformed getBalance result: {result!r}") from exc

    def get_balance(self, address: str) -> Decimal:
        """Return the current balance of ``address`` in SOL."""

        return lamports_to_sol(self.get_balance_lamports(address))

    def list_recent_signatures(self, address: str, limit: int = 10) -> List[str]:
        """Return up to ``limit`` signatures touching ``address``, newest first."""

        result = self.call("getSignaturesForAddress", [address, {"limit": limit}])
        if not isinstance(result, list):
            raise RPCTransportError(f"Malformed getSignaturesForAddress result: {result!r}")
        try:
            return [str(entry["signature"]) for entry in result]
        except (KeyError, TypeError) as exc:
            raise RPCTransportError("Signature entry without a signature field") from exc

    def get_transaction(self, signature: str) -> Dict[str, Any] | None:
        """Fetch transaction detail; ``None`` when the node does not know it."""

        return self.call(
            "getTransaction",
            [
                signature,
                {
                    "encoding": "json",
                    "commitment": self.config.commitment,
                    "maxSupportedTransactionVersion": 0,
                },
            ],
        )

    # Write paths ----------------------------------------------------------

    def get_minimum_balance_for_rent_exemption(self, size: int) -> int:
        return int(self.call("getMinimumBalanceForRentExemption", [size]))

    def get_latest_blockhash(self) -> str:
        result = self.call("getLatestBlockhash", [{"commitment": self.config.commitment}])
        try:
            return str(result["value"]["blockhash"])
        except (KeyError, TypeError) as exc:
            raise RPCTransportError(f"Malformed getLatestBlockhash result: {result!r}") from exc

    def send_transaction(self, raw_tx: bytes) -> str:
        """Submit a serialized, signed transaction and return its signature."""

        encoded = base64.b64encode(raw_tx).decode("ascii")
        return str(
            self.call(
                "sendTransaction",
                [encoded, {"encoding": "base64", "preflightCommitment": self.config.commitment}],
            )
        )

    def get_signature_statuses(self, signatures: List[str]) -> List[Dict[str, Any] | None]:
        result = self.call("getSignatureStatuses", [signatures])
        try:
            return list(result["value"])
        except (KeyError, TypeError) as exc:
            raise RPCTransportError(f"Malformed getSignatureStatuses result: {result!r}") from exc

    def confirm_transaction(
        self,
        signature: str,
        *,
        poll_interval: float = 1.0,
        max_wait_seconds: float = 90.0,
    ) -> Dict[str, Any]:
        """Block until ``signature`` reaches the configured commitment."""

        wanted = _CONFIRMED_LEVELS.get(self.config.commitment, 1)
        started = time.monotonic()
        while True:
            status = self.get_signature_statuses([signature])[0]
            if status is not None:
                if status.get("err") is not None:
                    raise RPCError(-1, f"Transaction {signature} failed: {status['err']}")
                level = _CONFIRMED_LEVELS.get(status.get("confirmationStatus") or "", 0)
                if level >= wanted:
                    logger.info("Transaction %s reached %s", signature, status.get("confirmationStatus"))
                    return status
            if time.monotonic() - started >= max_wait_seconds:
                raise RPCTransportError(
                    f"Transaction {signature} was not confirmed within {max_wait_seconds:.0f}s"
                )
            time.sleep(poll_interval)


__all__ = [
    "ConfigurationError",
    "RPCError",
    "RPCTransportError",
    "SolanaRPCClient",
    "format_rpc_hint",
]

"""Shared configuration loader for the token wizard."""

from __future__ import annotations

import math
import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping
from urllib.parse import urlparse

import yaml


class ConfigurationError(RuntimeError):
    """Raised when configuration is invalid."""


DEFAULT_CONFIG_PATH = Path.home() / ".sol-token-wizard.yaml"
DEFAULT_RPC_URL = "https://api.mainnet-beta.solana.com"
DEFAULT_STATE_PATH = Path("state.json")
_CONFIG_PATH_OVERRIDE: Path | None = None

_ENV_PREFIX = "SOL_WIZARD_"


@dataclass
class WizardConfig:
    """Runtime settings for the ledger endpoint, state file and utilities."""

    rpc_url: str = DEFAULT_RPC_URL
    request_timeout: float = 30.0
    commitment: str = "confirmed"
    state_path: Path = DEFAULT_STATE_PATH
    poll_interval: float = 1.0
    min_deposit_sol: Decimal = Decimal("0.002")
    deposit_timeout: float | None = None
    history_limit: int = 10
    mint_amount: int = 1_000_000
    keygen_bin: str = "solana-keygen"
    spl_token_bin: str = "spl-token"


def set_default_config_path(path: str | Path | None) -> None:
    """Remember a user-supplied config path for future loads."""

    global _CONFIG_PATH_OVERRIDE
    _CONFIG_PATH_OVERRIDE = Path(path).expanduser() if path else None


def _load_config_file(path: Path, *, required: bool) -> dict[str, Any]:
    if not path.exists():
        if required:
            raise ConfigurationError(f"Config file not found: {path}")
        return {}

    try:
        loaded = yaml.safe_load(path.read_text()) or {}
    except yaml.YAMLError as exc:  # pragma: no cover - delegated to PyYAML
        raise ConfigurationError(f"Invalid YAML in config file {path}: {exc}") from exc

    if not isinstance(loaded, dict):
        raise ConfigurationError(f"Expected {path} to contain a YAML object with a 'wizard' section")
    return loaded


def _first_value(*values: Any, default: Any = None) -> Any:
    for value in values:
        if value is not None:
            return value
    return default


def _coerce_positive_float(raw: Any, *, source: str) -> float | None:
    if raw is None:
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid number in {source}: {raw}") from exc
    if not math.isfinite(value):
        raise ConfigurationError(f"{source} must be a finite number, got {raw}")
    if value <= 0:
        raise ConfigurationError(f"{source} must be positive, got {raw}")
    return value


def _coerce_positive_int(raw: Any, *, source: str) -> int | None:
    if raw is None:
        return None
    try:
        value = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"Invalid integer in {source}: {raw}") from exc
    if value <= 0:
        raise ConfigurationError(f"{source} must be positive, got {raw}")
    return value


def _coerce_decimal(raw: Any, *, source: str) -> Decimal | None:
    if raw is None:
        return None
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation as exc:
        raise ConfigurationError(f"Invalid amount in {source}: {raw}") from exc
    if not value.is_finite():
        raise ConfigurationError(f"{source} must be a finite amount, got {raw}")
    if value < 0:
        raise ConfigurationError(f"{source} must not be negative, got {raw}")
    return value


def _validate_rpc_url(raw: str) -> str:
    parsed = urlparse(raw)
    if parsed.scheme.lower() not in {"http", "https"} or not parsed.hostname:
        raise ConfigurationError(f"Invalid RPC endpoint URL: {raw}")
    return raw


def load_wizard_config(
    *,
    config_path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    overrides: Mapping[str, Any] | None = None,
) -> WizardConfig:
    """Load wizard settings from overrides, environment variables and optional YAML.

    Precedence is ``overrides`` > ``SOL_WIZARD_*`` environment variables >
    the ``wizard:`` section of the YAML file > built-in defaults.
    """

    env_map = os.environ if env is None else env
    explicit_path = config_path is not None or _CONFIG_PATH_OVERRIDE is not None
    path = (
        Path(config_path).expanduser()
        if config_path is not None
        else _CONFIG_PATH_OVERRIDE or DEFAULT_CONFIG_PATH
    )

    file_config = _load_config_file(path, required=explicit_path)
    section = file_config.get("wizard", {})
    if section is None:
        section = {}
    if not isinstance(section, dict):
        raise ConfigurationError(f"Expected 'wizard' to be a mapping in {path}")

    override_map = dict(overrides or {})

    def pick(key: str) -> Any:
        return _first_value(
            override_map.get(key),
            env_map.get(_ENV_PREFIX + key.upper()),
            section.get(key),
        )

    defaults = WizardConfig()

    rpc_url = _validate_rpc_url(str(_first_value(pick("rpc_url"), default=defaults.rpc_url)))
    state_raw = pick("state_path")
    state_path = Path(state_raw).expanduser() if state_raw else defaults.state_path

    return WizardConfig(
        rpc_url=rpc_url,
        request_timeout=_first_value(
            _coerce_positive_float(pick("request_timeout"), source="request_timeout"),
            default=defaults.request_timeout,
        ),
        commitment=str(_first_value(pick("commitment"), default=defaults.commitment)),
        state_path=state_path,
        poll_interval=_first_value(
            _coerce_positive_float(pick("poll_interval"), source="poll_interval"),
            default=defaults.poll_interval,
        ),
        min_deposit_sol=_first_value(
            _coerce_decimal(pick("min_deposit_sol"), source="min_deposit_sol"),
            default=defaults.min_deposit_sol,
        ),
        deposit_timeout=_coerce_positive_float(pick("deposit_timeout"), source="deposit_timeout"),
        history_limit=_first_value(
            _coerce_positive_int(pick("history_limit"), source="history_limit"),
            default=defaults.history_limit,
        ),
        mint_amount=_first_value(
            _coerce_positive_int(pick("mint_amount"), source="mint_amount"),
            default=defaults.mint_amount,
        ),
        keygen_bin=str(_first_value(pick("keygen_bin"), default=defaults.keygen_bin)),
        spl_token_bin=str(_first_value(pick("spl_token_bin"), default=defaults.spl_token_bin)),
    )

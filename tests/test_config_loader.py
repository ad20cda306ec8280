from decimal import Decimal
from pathlib import Path

import pytest

from sol_token_wizard.config import ConfigurationError, WizardConfig, load_wizard_config


def test_load_wizard_config_prefers_environment_over_yaml(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
        wizard:
          rpc_url: https://filehost.example/rpc
          poll_interval: 5
          min_deposit_sol: "0.01"
          history_limit: 3
        """
    )

    env_map = {
        "SOL_WIZARD_RPC_URL": "https://envhost.example",
        "SOL_WIZARD_POLL_INTERVAL": "0.5",
    }

    config = load_wizard_config(config_path=config_path, env=env_map)

    assert isinstance(config, WizardConfig)
    assert config.rpc_url == "https://envhost.example"
    assert config.poll_interval == 0.5
    assert config.min_deposit_sol == Decimal("0.01")
    assert config.history_limit == 3


def test_load_wizard_config_defaults_when_default_file_missing(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr("sol_token_wizard.config.DEFAULT_CONFIG_PATH", tmp_path / "absent.yaml")

    config = load_wizard_config(env={})

    assert config.rpc_url == "https://api.mainnet-beta.solana.com"
    assert config.min_deposit_sol == Decimal("0.002")
    assert config.poll_interval == 1.0
    assert config.mint_amount == 1_000_000
    assert config.deposit_timeout is None
    assert config.state_path == Path("state.json")


def test_overrides_win_over_environment(tmp_path: Path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("wizard:\n  state_path: from-file.json\n")

    config = load_wizard_config(
        config_path=config_path,
        env={"SOL_WIZARD_STATE_PATH": str(tmp_path / "env.json")},
        overrides={"state_path": str(tmp_path / "override.json")},
    )

    assert config.state_path == tmp_path / "override.json"


def test_explicit_missing_config_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigurationError):
        load_wizard_config(config_path=tmp_path / "missing.yaml", env={})


@pytest.mark.parametrize(
    "env_map",
    [
        {"SOL_WIZARD_RPC_URL": "ftp://example.com"},
        {"SOL_WIZARD_POLL_INTERVAL": "0"},
        {"SOL_WIZARD_HISTORY_LIMIT": "ten"},
        {"SOL_WIZARD_MIN_DEPOSIT_SOL": "lots"},
        {"SOL_WIZARD_MIN_DEPOSIT_SOL": "NaN"},
        {"SOL_WIZARD_MIN_DEPOSIT_SOL": "Infinity"},
        {"SOL_WIZARD_POLL_INTERVAL": "nan"},
        {"SOL_WIZARD_REQUEST_TIMEOUT": "inf"},
    ],
)
def test_invalid_values_are_rejected(tmp_path: Path, env_map: dict) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("wizard: {}\n")

    with pytest.raises(ConfigurationError):
        load_wizard_config(config_path=config_path, env=env_map)

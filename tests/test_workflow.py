import json
from decimal import Decimal
from pathlib import Path

import base58
import pytest
from solders.keypair import Keypair

from sol_token_wizard import workflow as workflow_module
from sol_token_wizard.commands import CommandFailedError, CommandResult
from sol_token_wizard.config import WizardConfig
from sol_token_wizard.keys import InputError
from sol_token_wizard.state import AwaitDeposit, CreateToken, Done, Start, StateStore
from sol_token_wizard.units import sol_to_lamports
from sol_token_wizard.watcher import DepositWatcher
from sol_token_wizard.workflow import TokenWorkflow

WALLET_A = "7xKXtg2CW87d97TXJSDpbD5jBkheTqA83TZRuJosgAsU"
TOKEN = "So11111111111111111111111111111111111111112"


class ScriptedPrompter:
    def __init__(self, choices=(), answers=(), secrets=()) -> None:
        self.choices = list(choices)
        self.answers = list(answers)
        self.secrets = list(secrets)
        self.messages: list[str] = []
        self.asked: list[str] = []

    def choose(self, prompt, options) -> int:
        return self.choices.pop(0)

    def ask(self, prompt, default=None, allow_empty=False) -> str:
        self.asked.append(prompt)
        return self.answers.pop(0)

    def ask_secret(self, prompt) -> str:
        return self.secrets.pop(0)

    def show(self, message) -> None:
        self.messages.append(message)


class BalanceRPC:
    def __init__(self, readings_sol) -> None:
        self.readings = [sol_to_lamports(Decimal(value)) for value in readings_sol]
        self.calls = 0

    def get_balance_lamports(self, address: str) -> int:
        value = self.readings[min(self.calls, len(self.readings) - 1)]
        self.calls += 1
        return value


class StubRunner:
    def __init__(self, fail_mint: bool = False) -> None:
        self.fail_mint = fail_mint
        self.calls: list[tuple] = []

    def create_wallet(self) -> str:
        self.calls.append(("create_wallet",))
        return WALLET_A

    def create_token(self) -> str:
        self.calls.append(("create_token",))
        return TOKEN

    def create_token_account(self, token_address: str) -> str:
        self.calls.append(("create_account", token_address))
        return "AccountAddr"

    def mint_tokens(self, token_address: str, amount: int, recipient: str):
        self.calls.append(("mint", token_address, amount, recipient))
        if self.fail_mint:
            raise CommandFailedError(CommandResult(["spl-token", "mint"], 1, "", "boom"))
        return CommandResult(["spl-token", "mint"], 0, "Minting 1000000 tokens", "")


def _workflow(tmp_path: Path, prompter, rpc=None, runner=None) -> TokenWorkflow:
    config = WizardConfig(state_path=tmp_path / "state.json")
    rpc = rpc or BalanceRPC(["0.0025"])
    watcher = DepositWatcher(rpc, config.poll_interval, sleep=lambda _s: None)
    return TokenWorkflow(
        config,
        rpc,
        runner or StubRunner(),
        StateStore(config.state_path),
        prompter,
        watcher=watcher,
    )


def test_existing_wallet_is_persisted_after_deposit_then_resumed(tmp_path: Path) -> None:
    rpc = BalanceRPC(["0", "0.001", "0.0025"])
    first = _workflow(
        tmp_path,
        ScriptedPrompter(choices=[1], answers=[WALLET_A]),
        rpc=rpc,
    )

    state = first.choose_wallet()
    assert state == AwaitDeposit(pubkey=WALLET_A)
    state = first.await_deposit(state)
    first.store.save(state)

    assert rpc.calls == 3
    record = json.loads((tmp_path / "state.json").read_text())
    assert record["step"] == "create_token"
    assert record["pubkey"] == WALLET_A

    # A second process loads the same file and starts at create_token.
    runner = StubRunner()
    prompter = ScriptedPrompter(answers=["Grave", "GRV"], secrets=[""])
    second = _workflow(tmp_path, prompter, runner=runner)
    loaded = second.store.load()
    assert loaded == CreateToken(pubkey=WALLET_A)

    final = second.run(loaded)

    assert isinstance(final, Done)
    assert final.token_address == TOKEN
    assert final.account_address == "AccountAddr"
    assert ("create_wallet",) not in runner.calls
    assert ("mint", TOKEN, 1_000_000, WALLET_A) in runner.calls


def test_full_pass_with_new_wallet(tmp_path: Path) -> None:
    runner = StubRunner()
    prompter = ScriptedPrompter(
        choices=[0],
        answers=["Grave", "GRV"],
        secrets=[""],
    )
    workflow = _workflow(tmp_path, prompter, runner=runner)

    final = workflow.run(Start())

    assert final == Done(WALLET_A, "Grave", "GRV", TOKEN, "AccountAddr")
    assert [call[0] for call in runner.calls] == [
        "create_wallet",
        "create_token",
        "create_account",
        "mint",
    ]
    # Only the post-deposit state is written.
    assert StateStore(tmp_path / "state.json").load() == CreateToken(pubkey=WALLET_A)


def test_failure_leaves_persisted_step_at_create_token(tmp_path: Path) -> None:
    store = StateStore(tmp_path / "state.json")
    store.save(CreateToken(pubkey=WALLET_A))
    workflow = _workflow(
        tmp_path,
        ScriptedPrompter(answers=["Grave", "GRV"], secrets=[""]),
        runner=StubRunner(fail_mint=True),
    )

    with pytest.raises(CommandFailedError):
        workflow.run(store.load())

    assert store.load() == CreateToken(pubkey=WALLET_A)


def test_invalid_existing_wallet_is_rejected(tmp_path: Path) -> None:
    workflow = _workflow(tmp_path, ScriptedPrompter(choices=[1], answers=["not-a-key"]))

    with pytest.raises(InputError):
        workflow.run(Start())

    assert not (tmp_path / "state.json").exists()


def test_metadata_uses_derived_pda_when_blank(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    recorded: dict = {}

    def fake_attach(rpc, **kwargs):
        recorded.update(kwargs)
        return "sig-meta"

    monkeypatch.setattr(workflow_module, "attach_metadata", fake_attach)
    payer = Keypair()
    prompter = ScriptedPrompter(
        answers=["Grave", "GRV", "https://x.io/t.json", ""],
        secrets=[base58.b58encode(bytes(payer)).decode("ascii")],
    )
    workflow = _workflow(tmp_path, prompter)

    workflow.run(CreateToken(pubkey=WALLET_A))

    assert recorded["payer"].pubkey() == payer.pubkey()
    assert recorded["metadata"] == workflow_module.find_metadata_pda(recorded["mint"])
    assert recorded["uri"] == "https://x.io/t.json"
    assert any("sig-meta" in message for message in prompter.messages)


def test_done_state_can_restart_or_return(tmp_path: Path) -> None:
    done = Done(WALLET_A, "Grave", "GRV", TOKEN, "AccountAddr")

    stay = _workflow(tmp_path, ScriptedPrompter(choices=[1]))
    assert stay.run(done) is done

    runner = StubRunner()
    restart = _workflow(
        tmp_path,
        ScriptedPrompter(choices=[0, 0], answers=["Other", "OTH"], secrets=[""]),
        runner=runner,
    )
    final = restart.run(done)
    assert isinstance(final, Done)
    assert final.token_name == "Other"
    assert runner.calls[0] == ("create_wallet",)


def _secret(keypair: Keypair) -> str:
    return base58.b58encode(bytes(keypair)).decode("ascii")


@pytest.mark.parametrize(
    "answers, secret",
    [
        (["N" * 40, "GRV", "https://x.io/t.json", ""], "key"),
        (["Grave", "GRV", "https://"], "key"),
        (["Grave", "GRV", ""], "key"),
        (["Grave", "GRV", "https://x.io/t.json", "Clique"], "key"),
        (["Grave", "GRV"], "not-a-secret-key"),
    ],
)
def test_bad_input_is_rejected_before_any_command(
    tmp_path: Path, answers: list, secret: str
) -> None:
    runner = StubRunner()
    secret = _secret(Keypair()) if secret == "key" else secret
    workflow = _workflow(
        tmp_path, ScriptedPrompter(answers=answers, secrets=[secret]), runner=runner
    )

    with pytest.raises(InputError):
        workflow.run(CreateToken(pubkey=WALLET_A))

    assert runner.calls == []


def test_blank_key_skips_uri_and_metadata(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def fail_attach(rpc, **kwargs):
        raise AssertionError("metadata must not be attached")

    monkeypatch.setattr(workflow_module, "attach_metadata", fail_attach)
    prompter = ScriptedPrompter(answers=["Grave", "GRV"], secrets=["  "])
    runner = StubRunner()

    final = _workflow(tmp_path, prompter, runner=runner).run(CreateToken(pubkey=WALLET_A))

    assert final == Done(WALLET_A, "Grave", "GRV", TOKEN, "AccountAddr")
    assert prompter.asked == ["Token name", "Token symbol"]
    assert any("skipping on-chain metadata" in message for message in prompter.messages)

import json

from deskpilot import cli
from deskpilot.config import Configuration, Settings
from deskpilot.factory import build_oracle
from deskpilot.models.anthropic import AnthropicOracle
from deskpilot.models.mock import ScriptedOracle


def test_parse_args_and_overrides():
    args = cli.parse_args(
        ["open safari", "--model", "claude-x", "--max-iterations", "9", "--history-limit", "4", "--vision"]
    )
    assert args.command == "open safari"
    assert args.vision is True
    settings = cli.apply_overrides(Settings(anthropic_api_key=None), args)
    assert settings.model == "claude-x"
    assert settings.max_iterations == 9
    assert settings.history_limit == 4


def test_main_without_key_prints_failed_result(monkeypatch, capsys):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    exit_code = cli.main(["open safari", "--dry-run-plan"])
    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 1
    assert payload["success"] is False
    assert payload["iterations"] == 0
    assert payload["error_type"] == "api"


def test_main_dry_run_with_scripted_reply(monkeypatch, capsys):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    reply = json.dumps(
        {"goal": "open safari", "steps": [{"action": "activate_app", "params": {"app_name": "Safari"}}]}
    )
    exit_code = cli.main(["open safari", "--dry-run-plan", "--mock-reply", reply])
    payload = json.loads(capsys.readouterr().out)
    assert exit_code == 0
    assert payload["intent"]["steps"] == [
        {"action": "activate_app", "params": {"app_name": "Safari"}}
    ]
    assert payload["intent"]["requiresObservation"] is False
    assert payload["keyword_hint_complex"] is False


def test_build_oracle_mock_switch():
    config = Configuration(Settings(anthropic_api_key=None))
    oracle = build_oracle(config, use_mock=True, scripted=["hi"])
    assert isinstance(oracle, ScriptedOracle)
    assert oracle.is_configured()
    assert isinstance(build_oracle(config), AnthropicOracle)

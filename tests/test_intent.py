import asyncio

import pytest

from deskpilot.intent import IntentParseError, IntentResolver, build_intent, validate_intent
from deskpilot.models.base import OracleError
from deskpilot.models.mock import ScriptedOracle


def test_resolver_parses_fenced_reply():
    oracle = ScriptedOracle(
        [
            'Here you go:\n```json\n{"goal": "open safari", "steps": '
            '[{"action": "activate_app", "params": {"app_name": "Safari"}}], '
            '"requiresObservation": false}\n```'
        ]
    )
    intent = asyncio.run(IntentResolver(oracle).resolve("Open Safari"))
    assert intent.goal == "open safari"
    assert [step.action for step in intent.steps] == ["activate_app"]
    assert intent.requires_observation is False
    assert '"Open Safari"' in oracle.calls[0].prompt
    assert oracle.calls[0].image is None


def test_requires_observation_inferred_from_click_element():
    intent = build_intent(
        {"steps": [{"action": "click_element", "params": {"description": "Play"}}]}, "play it"
    )
    assert intent.requires_observation is True
    assert intent.goal == "play it"


def test_requires_observation_defaults_false_without_click_element():
    intent = build_intent({"steps": [{"action": "open_url", "params": {"url": "x.com"}}]}, "c")
    assert intent.requires_observation is False


def test_explicit_flag_is_authoritative():
    intent = build_intent(
        {"steps": [{"action": "click_element"}], "requiresObservation": False}, "c"
    )
    assert intent.requires_observation is False


def test_missing_steps_become_empty_plan():
    assert validate_intent({"goal": "x"}) == []
    assert validate_intent({"steps": "nope"}) == []


def test_step_aliases_are_normalized():
    steps = validate_intent({"steps": [{"action": "launch", "params": {"app_name": "Chrome"}}]})
    assert steps[0].action == "activate_app"
    assert steps[0].params == {"app_name": "Chrome"}


@pytest.mark.parametrize(
    "payload",
    [
        {"steps": ["activate_app"]},
        {"steps": [{"params": {}}]},
        {"steps": [{"action": "wait", "params": [1]}]},
    ],
)
def test_malformed_steps_raise(payload):
    with pytest.raises(IntentParseError):
        validate_intent(payload)


def test_unparseable_reply_raises_parse_error():
    oracle = ScriptedOracle(["I cannot help with that."])
    with pytest.raises(IntentParseError):
        asyncio.run(IntentResolver(oracle).resolve("do things"))


def test_oracle_errors_propagate():
    oracle = ScriptedOracle([OracleError("HTTP 401: invalid x-api-key")])
    with pytest.raises(OracleError):
        asyncio.run(IntentResolver(oracle).resolve("do things"))

"""Intent resolution: natural-language command to an ordered step plan."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from deskpilot import prompts
from deskpilot.actions import ActionKind, normalize_step
from deskpilot.models.base import Oracle
from deskpilot.util.json_extract import JsonExtractError, load_json_object
from deskpilot.util.logging import clip, get_logger, redact


logger = get_logger(__name__)


class IntentParseError(ValueError):
    """Raised when the oracle's plan cannot be turned into an intent."""


class Step(BaseModel):
    model_config = ConfigDict(frozen=True)

    action: str
    params: dict[str, Any] = Field(default_factory=dict)


class Intent(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    goal: str
    steps: list[Step] = Field(default_factory=list)
    requires_observation: bool = Field(alias="requiresObservation")


def validate_intent(payload: dict[str, Any]) -> list[Step]:
    """Validate the ``steps`` array of an intent payload.

    A missing or non-list ``steps`` yields an empty plan. Each present step
    must be an object with a non-empty string ``action`` and, if given, an
    object ``params``.
    """
    raw_steps = payload.get("steps")
    if not isinstance(raw_steps, list):
        return []
    steps: list[Step] = []
    for index, raw in enumerate(raw_steps, start=1):
        if not isinstance(raw, dict):
            raise IntentParseError(f"Step {index} must be an object")
        action = raw.get("action")
        if not isinstance(action, str) or not action.strip():
            raise IntentParseError(f"Step {index} is missing an action")
        params = raw.get("params")
        if params is None:
            params = {}
        elif not isinstance(params, dict):
            raise IntentParseError(f"Step {index} params must be an object")
        name, params = normalize_step(action, params)
        steps.append(Step(action=name, params=params))
    return steps


def build_intent(payload: dict[str, Any], command: str) -> Intent:
    steps = validate_intent(payload)
    requires_observation = payload.get("requiresObservation")
    if not isinstance(requires_observation, bool):
        raw_steps = payload.get("steps") if isinstance(payload.get("steps"), list) else []
        requires_observation = any(
            raw.get("action") == ActionKind.CLICK_ELEMENT.value for raw in raw_steps
        )
    goal = payload.get("goal")
    if not isinstance(goal, str) or not goal.strip():
        goal = command
    return Intent(goal=goal, steps=steps, requires_observation=requires_observation)


class IntentResolver:
    def __init__(self, oracle: Oracle) -> None:
        self.oracle = oracle

    async def resolve(self, command: str) -> Intent:
        """Ask the oracle for a plan; ``OracleError`` propagates unchanged."""
        response = await self.oracle.complete(
            prompts.INTENT_PARSER, prompts.INTENT_REQUEST.format(command=command)
        )
        try:
            payload = load_json_object(response.text)
        except JsonExtractError as exc:
            logger.warning("Intent response not parseable: %s", clip(redact(response.text)))
            raise IntentParseError(str(exc)) from exc
        intent = build_intent(payload, command)
        logger.info(
            "Resolved intent with %s steps (requires_observation=%s).",
            len(intent.steps),
            intent.requires_observation,
        )
        return intent

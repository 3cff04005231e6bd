"""Agent loop: sequential execution and the vision-guided observe/think/act cycle."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from deskpilot import prompts
from deskpilot.actions import ActionExecutor, ActionKind, normalize_action, normalize_step
from deskpilot.capture import CaptureError, ScreenCapture
from deskpilot.classifier import classify_complexity
from deskpilot.config import Configuration
from deskpilot.failures import ErrorType
from deskpilot.history import SessionHistory
from deskpilot.intent import Intent, IntentParseError, IntentResolver, Step
from deskpilot.models.base import Oracle, OracleError
from deskpilot.trace import TraceRecorder
from deskpilot.util.json_extract import JsonExtractError, load_json_object
from deskpilot.util.logging import clip, get_logger, redact
from deskpilot.vision import GroundingError, VisionService


logger = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class Mode(str, Enum):
    SEQUENTIAL = "sequential"
    AGENTIC = "agentic"


class ActionResult(BaseModel):
    success: bool
    action: str
    params: dict[str, Any] = Field(default_factory=dict)
    error: str | None = None


class SessionResult(BaseModel):
    success: bool
    message: str
    steps: list[ActionResult] = Field(default_factory=list)
    iterations: int = 0
    error: str | None = None
    error_type: ErrorType | None = None
    trace_path: str | None = None


class PlannerDecision(BaseModel):
    """Planner reply: either a completion signal or the next action."""

    model_config = ConfigDict(extra="ignore")

    complete: bool = False
    reasoning: str | None = None
    thought: str | None = None
    action: str | None = None
    params: dict[str, Any] = Field(default_factory=dict)

    @field_validator("params", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return {} if value is None else value


@dataclass
class AgentState:
    goal: str
    history: SessionHistory = field(default_factory=SessionHistory)
    iteration: int = 0
    results: list[ActionResult] = field(default_factory=list)


@dataclass(frozen=True)
class _StepOutcome:
    result: ActionResult
    error_type: ErrorType | None = None


def summarize_action(result: ActionResult) -> str:
    status = "success" if result.success else f"failed: {result.error}"
    return f"{result.action}: {json.dumps(result.params, default=str)} -> {status}"


def _idle(reason: str) -> PlannerDecision:
    return PlannerDecision(action=ActionKind.IDLE.value, params={"reason": reason})


class AgentLoop:
    """Runs one command at a time per call; sessions share no mutable state."""

    def __init__(
        self,
        oracle: Oracle,
        capture: ScreenCapture,
        executor: ActionExecutor,
        config: Configuration,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        self.oracle = oracle
        self.executor = executor
        self.config = config
        self.resolver = IntentResolver(oracle)
        self.vision = VisionService(oracle, capture, config)
        self._sleep = sleep

    async def run(self, command: str, force_vision: bool = False) -> SessionResult:
        """Resolve ``command`` into an intent and execute it to a terminal state."""
        trace = self._new_trace()
        logger.info(
            "Session started (keyword hint complex=%s): %s",
            classify_complexity(command),
            clip(redact(command)),
        )
        try:
            intent = await self.resolver.resolve(command)
        except OracleError as exc:
            return self._finish(
                trace,
                SessionResult(
                    success=False,
                    message="Failed to parse command",
                    error=str(exc),
                    error_type=ErrorType.API,
                ),
            )
        except IntentParseError as exc:
            return self._finish(
                trace,
                SessionResult(
                    success=False,
                    message="Failed to parse command",
                    error=str(exc),
                    error_type=ErrorType.PARSE,
                ),
            )
        if trace:
            trace.record_intent(command, intent.model_dump(by_alias=True))

        mode = Mode.AGENTIC if intent.requires_observation or force_vision else Mode.SEQUENTIAL
        logger.info("Mode selected: %s (%s steps).", mode.value, len(intent.steps))
        if mode is Mode.SEQUENTIAL:
            result = await self._run_sequential(intent.steps, trace)
        else:
            result = await self._run_agentic(intent.goal, intent.steps, trace)
        return self._finish(trace, result)

    async def execute_steps(self, steps: list[Step | dict[str, Any]]) -> SessionResult:
        trace = self._new_trace()
        plan = [step if isinstance(step, Step) else Step.model_validate(step) for step in steps]
        return self._finish(trace, await self._run_sequential(plan, trace))

    async def execute_with_vision(self, goal: str) -> SessionResult:
        trace = self._new_trace()
        return self._finish(trace, await self._run_agentic(goal, [], trace))

    async def resolve(self, command: str) -> Intent:
        return await self.resolver.resolve(command)

    async def _run_sequential(
        self, steps: list[Step], trace: TraceRecorder | None
    ) -> SessionResult:
        results: list[ActionResult] = []
        for step in steps:
            try:
                outcome = await self._perform(step.action, step.params, trace)
            except OracleError as exc:
                results.append(
                    ActionResult(
                        success=False, action=step.action, params=step.params, error=str(exc)
                    )
                )
                return SessionResult(
                    success=False,
                    message=f"Failed at step: {step.action}",
                    steps=results,
                    iterations=1,
                    error=str(exc),
                    error_type=ErrorType.API,
                )
            results.append(outcome.result)
            if not outcome.result.success:
                return SessionResult(
                    success=False,
                    message=f"Failed at step: {step.action}",
                    steps=results,
                    iterations=1,
                    error=outcome.result.error,
                    error_type=outcome.error_type,
                )
            await self._sleep(self.config.current.action_delay_seconds)
        return SessionResult(
            success=True,
            message="All steps completed successfully",
            steps=results,
            iterations=1,
        )

    async def _run_agentic(
        self, goal: str, steps: list[Step], trace: TraceRecorder | None
    ) -> SessionResult:
        state = AgentState(goal=goal)

        for step in steps:
            if normalize_action(step.action) == ActionKind.CLICK_ELEMENT.value:
                break
            outcome = await self._perform(step.action, step.params, trace)
            state.results.append(outcome.result)
            state.history.add_action(summarize_action(outcome.result))
            if not outcome.result.success:
                logger.warning("Setup step %s failed: %s", step.action, outcome.result.error)
            await self._sleep(self.config.current.action_delay_seconds)

        while state.iteration < self.config.current.max_iterations:
            state.iteration += 1
            logger.info("Iteration %s: observing.", state.iteration)

            await self._sleep(self.config.current.observation_delay_seconds)
            try:
                observation = await self.vision.describe_screen()
            except (OracleError, CaptureError) as exc:
                observation = f"Observation failed: {exc}"
                logger.warning(observation)
            state.history.add_observation(observation)
            if trace:
                trace.record_observation(observation)

            try:
                decision = await self._plan(state)
            except OracleError as exc:
                return SessionResult(
                    success=False,
                    message=f"Planning failed: {exc}",
                    steps=state.results,
                    iterations=state.iteration,
                    error=str(exc),
                    error_type=ErrorType.API,
                )
            if trace:
                trace.record_plan(decision.model_dump())

            if decision.complete:
                return SessionResult(
                    success=True,
                    message=decision.reasoning or "Goal completed",
                    steps=state.results,
                    iterations=state.iteration,
                )

            action = decision.action or ActionKind.IDLE.value
            try:
                outcome = await self._perform(action, decision.params, trace)
            except OracleError as exc:
                state.results.append(
                    ActionResult(
                        success=False, action=action, params=decision.params, error=str(exc)
                    )
                )
                return SessionResult(
                    success=False,
                    message=f"Failed at step: {action}",
                    steps=state.results,
                    iterations=state.iteration,
                    error=str(exc),
                    error_type=ErrorType.API,
                )
            state.results.append(outcome.result)
            state.history.add_action(summarize_action(outcome.result))
            await self._sleep(self.config.current.action_delay_seconds)

        return SessionResult(
            success=False,
            message="Max iterations reached without completing goal",
            steps=state.results,
            iterations=state.iteration,
            error=f"Goal not reached after {state.iteration} iterations",
            error_type=ErrorType.TIMEOUT,
        )

    async def _plan(self, state: AgentState) -> PlannerDecision:
        history = state.history.render(self.config.current.history_limit)
        prompt = prompts.PLAN_REQUEST.format(goal=state.goal, history=history)
        response = await self.oracle.complete(prompts.AGENT_PLANNER, prompt)
        try:
            decision = PlannerDecision.model_validate(load_json_object(response.text))
        except (JsonExtractError, ValidationError):
            logger.warning("Planner reply not parseable: %s", clip(response.text))
            return _idle("Could not parse planner response")
        if not decision.complete and not decision.action:
            return _idle("Planner response missing action")
        return decision

    async def _perform(
        self, action: str, params: dict[str, Any], trace: TraceRecorder | None
    ) -> _StepOutcome:
        """Execute one action; ``OracleError`` from grounding propagates."""
        name, params = normalize_step(action, params)
        if name == ActionKind.CLICK_ELEMENT.value:
            outcome = await self._click_element(params)
        elif name == ActionKind.IDLE.value:
            outcome = _StepOutcome(ActionResult(success=True, action=name, params=params))
        else:
            executed = await self.executor.execute(name, params)
            outcome = _StepOutcome(
                ActionResult(
                    success=executed.success, action=name, params=params, error=executed.error
                ),
                None if executed.success else ErrorType.ACTION,
            )
        result = outcome.result
        if result.success:
            logger.info("Action %s succeeded.", result.action)
        else:
            logger.warning("Action %s failed: %s", result.action, result.error)
        if trace:
            trace.record_action(result.action, result.params, result.success, result.error)
        return outcome

    async def _click_element(self, params: dict[str, Any]) -> _StepOutcome:
        name = ActionKind.CLICK_ELEMENT.value
        description = params.get("description")
        if not isinstance(description, str):
            description = ""
        try:
            coordinates = await self.vision.find_element(description)
        except (GroundingError, CaptureError) as exc:
            return _StepOutcome(
                ActionResult(success=False, action=name, params=params, error=str(exc)),
                ErrorType.VISION,
            )
        executed = await self.executor.execute(
            ActionKind.CLICK.value, {"x": coordinates.logical_x, "y": coordinates.logical_y}
        )
        resolved = {
            "description": description,
            "x": coordinates.logical_x,
            "y": coordinates.logical_y,
        }
        return _StepOutcome(
            ActionResult(
                success=executed.success, action=name, params=resolved, error=executed.error
            ),
            None if executed.success else ErrorType.ACTION,
        )

    def _new_trace(self) -> TraceRecorder | None:
        trace_dir = self.config.current.trace_dir
        if not trace_dir:
            return None
        return TraceRecorder(trace_id=uuid4().hex, trace_dir=trace_dir)

    def _finish(self, trace: TraceRecorder | None, result: SessionResult) -> SessionResult:
        if result.success:
            logger.info("Session succeeded after %s iterations: %s", result.iterations, result.message)
        else:
            logger.warning(
                "Session failed (%s): %s",
                result.error_type.value if result.error_type else "unknown",
                result.message,
            )
        if trace is None:
            return result
        trace.record("terminal", {"success": result.success, "message": result.message})
        trace_path = trace.finalize(result.model_dump(mode="json"))
        return result.model_copy(update={"trace_path": trace_path})

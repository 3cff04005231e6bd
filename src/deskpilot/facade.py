"""High-level entry points for running desktop automation."""

from __future__ import annotations

from typing import Any

from deskpilot.actions import ActionExecutor, ActionKind
from deskpilot.agent import AgentLoop, SessionResult
from deskpilot.capture import ScreenCapture
from deskpilot.config import Configuration, Settings
from deskpilot.coordinates import CoordinateSet
from deskpilot.factory import build_agent
from deskpilot.failures import ErrorType
from deskpilot.intent import Step
from deskpilot.models.base import Oracle, OracleError


NOT_CONFIGURED = "API key not configured. Set ANTHROPIC_API_KEY or call configure(anthropic_api_key=...)."


class DeskPilot:
    """Runs natural-language desktop commands.

    Collaborators default to the Anthropic oracle, mss capture and the macOS
    desktop executor; tests inject fakes.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        oracle: Oracle | None = None,
        capture: ScreenCapture | None = None,
        executor: ActionExecutor | None = None,
    ) -> None:
        self.config = Configuration(settings)
        self.agent: AgentLoop = build_agent(
            self.config, oracle=oracle, capture=capture, executor=executor
        )

    def is_configured(self) -> bool:
        return self.agent.oracle.is_configured()

    def configure(self, **changes: Any) -> Settings:
        """Apply setting changes; sessions already running see them from their next phase."""
        return self.config.update(**changes)

    def _not_configured(self) -> SessionResult:
        return SessionResult(
            success=False,
            message=NOT_CONFIGURED,
            iterations=0,
            error=NOT_CONFIGURED,
            error_type=ErrorType.API,
        )

    def _require_configured(self) -> None:
        if not self.is_configured():
            raise OracleError(NOT_CONFIGURED)

    async def execute(self, command: str, force_vision: bool = False) -> SessionResult:
        if not self.is_configured():
            return self._not_configured()
        return await self.agent.run(command, force_vision=force_vision)

    async def execute_steps(self, steps: list[Step | dict[str, Any]]) -> SessionResult:
        return await self.agent.execute_steps(steps)

    async def execute_with_vision(self, goal: str) -> SessionResult:
        if not self.is_configured():
            return self._not_configured()
        return await self.agent.execute_with_vision(goal)

    async def describe(self) -> str:
        self._require_configured()
        return await self.agent.vision.describe_screen()

    async def find_element(self, description: str) -> CoordinateSet:
        self._require_configured()
        return await self.agent.vision.find_element(description)

    async def click(self, description: str) -> bool:
        """Ground ``description`` and click it; grounding errors propagate."""
        coordinates = await self.find_element(description)
        outcome = await self.agent.executor.execute(
            ActionKind.CLICK.value, {"x": coordinates.logical_x, "y": coordinates.logical_y}
        )
        return outcome.success

    async def ask(self, question: str) -> str:
        self._require_configured()
        return await self.agent.vision.extract_info(question)

    async def check(self, condition: str) -> bool:
        self._require_configured()
        return await self.agent.vision.check_condition(condition)

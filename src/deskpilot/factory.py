"""Shared construction helpers for the oracle, capture, executor and agent."""

from __future__ import annotations

from deskpilot.actions import ActionExecutor, DesktopExecutor
from deskpilot.agent import AgentLoop
from deskpilot.capture import MssScreenCapture, ScreenCapture
from deskpilot.config import Configuration
from deskpilot.models.anthropic import AnthropicOracle
from deskpilot.models.base import Oracle
from deskpilot.models.mock import ScriptedOracle


def build_oracle(
    config: Configuration, use_mock: bool = False, scripted: list[str] | None = None
) -> Oracle:
    if use_mock:
        return ScriptedOracle(scripted)
    return AnthropicOracle(config)


def build_capture() -> ScreenCapture:
    return MssScreenCapture()


def build_executor(config: Configuration) -> ActionExecutor:
    return DesktopExecutor(config)


def build_agent(
    config: Configuration,
    oracle: Oracle | None = None,
    capture: ScreenCapture | None = None,
    executor: ActionExecutor | None = None,
) -> AgentLoop:
    return AgentLoop(
        oracle=oracle or build_oracle(config),
        capture=capture or build_capture(),
        executor=executor or build_executor(config),
        config=config,
    )

from __future__ import annotations

from typing import Any

import pytest
from PIL import Image

from deskpilot.actions import ActionExecutor, ActionOutcome
from deskpilot.capture import ScreenCapture, Snapshot
from deskpilot.config import Configuration, Settings
from deskpilot.coordinates import ScreenInfo


class FakeCapture(ScreenCapture):
    """Returns a small solid image with the geometry of a 1512x982 @2x display."""

    def __init__(self, screen: ScreenInfo | None = None, fail: Exception | None = None) -> None:
        self.screen = screen or ScreenInfo.from_logical(1512, 982, 2)
        self.fail = fail
        self.captures = 0

    async def capture(self) -> Snapshot:
        self.captures += 1
        if self.fail is not None:
            raise self.fail
        return Snapshot(image=Image.new("RGB", (302, 196), (40, 90, 160)), screen=self.screen)


class RecordingExecutor(ActionExecutor):
    def __init__(self, failing: dict[str, str] | None = None) -> None:
        super().__init__()
        self.failing = failing or {}
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def _record(self, name: str, params: Any) -> ActionOutcome:
        self.calls.append((name, params.model_dump()))
        if name in self.failing:
            return ActionOutcome(success=False, error=self.failing[name])
        return ActionOutcome(success=True)

    async def activate_app(self, params):
        return self._record("activate_app", params)

    async def quit_app(self, params):
        return self._record("quit_app", params)

    async def open_url(self, params):
        return self._record("open_url", params)

    async def click(self, params):
        return self._record("click", params)

    async def double_click(self, params):
        return self._record("double_click", params)

    async def right_click(self, params):
        return self._record("right_click", params)

    async def move_to(self, params):
        return self._record("move_to", params)

    async def scroll(self, params):
        return self._record("scroll", params)

    async def type_text(self, params):
        return self._record("type_text", params)

    async def press_key(self, params):
        return self._record("press_key", params)

    async def wait(self, params):
        return self._record("wait", params)


async def no_sleep(seconds: float) -> None:
    return None


@pytest.fixture
def config() -> Configuration:
    return Configuration(
        Settings(
            anthropic_api_key="sk-ant-test",
            trace_dir=None,
            max_iterations=5,
            action_delay_seconds=0,
            observation_delay_seconds=0,
        )
    )


@pytest.fixture
def capture() -> FakeCapture:
    return FakeCapture()


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()

import asyncio
import time

import pytest

from deskpilot import actions
from deskpilot.actions import (
    ActionKind,
    ActionOutcome,
    ActionSpecError,
    DesktopExecutor,
    KeyParams,
    PointParams,
    UrlParams,
    normalize_action,
    normalize_app_name,
    normalize_step,
    normalize_url,
    parse_action,
)
from conftest import RecordingExecutor


def test_parse_action_builds_typed_params():
    action = parse_action("scroll", {"direction": "down"})
    assert action.kind is ActionKind.SCROLL
    assert action.params.amount == 3


def test_parse_action_accepts_camel_case_and_aliases():
    action = parse_action("launch", {"appName": "Safari"})
    assert action.kind is ActionKind.ACTIVATE_APP
    assert action.params.app_name == "Safari"


def test_parse_action_floors_float_coordinates():
    action = parse_action("click", {"x": 10.9, "y": 20})
    assert isinstance(action.params, PointParams)
    assert (action.params.x, action.params.y) == (10, 20)


def test_unknown_action_is_rejected():
    with pytest.raises(ActionSpecError, match="Unknown action: fly"):
        parse_action("fly", {})


def test_invalid_params_name_the_action():
    with pytest.raises(ActionSpecError, match="scroll"):
        parse_action("scroll", {"direction": "diagonal"})
    with pytest.raises(ActionSpecError, match="click_element"):
        parse_action("click_element", {})


def test_vocabulary_names_are_not_aliased():
    assert normalize_action("click") == "click"
    assert normalize_action("tap") == "click_element"
    assert normalize_action("Sleep") == "wait"
    assert normalize_action("teleport") == "teleport"


def test_app_and_url_normalisation():
    assert normalize_app_name("chrome") == "Google Chrome"
    assert normalize_app_name("VSCode") == "Visual Studio Code"
    assert normalize_app_name("Pages") == "Pages"
    assert normalize_url("youtube") == "https://www.youtube.com"
    assert normalize_url("http://example.com") == "http://example.com"
    assert normalize_url("example.com/path") == "https://example.com/path"


def test_executor_dispatches_through_handler_table():
    executor = RecordingExecutor()
    outcome = asyncio.run(executor.execute("type", {"text": "hello"}))
    assert outcome == ActionOutcome(success=True)
    assert executor.calls == [("type_text", {"text": "hello"})]


def test_executor_reports_spec_errors_as_outcomes():
    executor = RecordingExecutor()
    outcome = asyncio.run(executor.execute("fly", {}))
    assert not outcome.success
    assert outcome.error == "Unknown action: fly"
    assert executor.calls == []


def test_click_element_is_not_a_primitive():
    executor = RecordingExecutor()
    outcome = asyncio.run(executor.execute("click_element", {"description": "OK"}))
    assert not outcome.success
    assert "cannot be executed directly" in outcome.error


def test_handler_exceptions_become_failed_outcomes():
    class ExplodingExecutor(RecordingExecutor):
        async def move_to(self, params):
            raise RuntimeError("display unavailable")

    outcome = asyncio.run(ExplodingExecutor().execute("move_to", {"x": 1, "y": 2}))
    assert not outcome.success
    assert "display unavailable" in outcome.error


class FakeGui:
    def __init__(self):
        self.calls = []

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self.calls.append((name, args, kwargs))

        return record


def test_desktop_press_key_maps_names(monkeypatch, config):
    gui = FakeGui()
    monkeypatch.setattr(actions, "_gui", lambda: gui)
    executor = DesktopExecutor(config)
    outcome = asyncio.run(executor.press_key(KeyParams(key="Enter", modifiers=["cmd", "Shift"])))
    assert outcome.success
    assert gui.calls == [("hotkey", ("command", "shift", "enter"), {})]


def test_desktop_press_key_rejects_unknown_modifier(monkeypatch, config):
    monkeypatch.setattr(actions, "_gui", lambda: FakeGui())
    outcome = asyncio.run(DesktopExecutor(config).press_key(KeyParams(key="a", modifiers=["hyper"])))
    assert not outcome.success
    assert "hyper" in outcome.error


def test_desktop_horizontal_scroll_uses_shift_arrow(monkeypatch, config):
    gui = FakeGui()
    monkeypatch.setattr(actions, "_gui", lambda: gui)
    asyncio.run(DesktopExecutor(config).execute("scroll", {"direction": "left"}))
    asyncio.run(DesktopExecutor(config).execute("scroll", {"direction": "down", "amount": 5}))
    assert gui.calls == [("hotkey", ("shift", "left"), {}), ("scroll", (-5,), {})]


def test_desktop_open_url_uses_normalised_browser(monkeypatch, config):
    commands = []

    async def fake_run(*args):
        commands.append(args)
        return 0, ""

    monkeypatch.setattr(actions, "_run", fake_run)
    outcome = asyncio.run(
        DesktopExecutor(config).open_url(UrlParams(url="github", browser="chrome"))
    )
    assert outcome.success
    assert commands == [("open", "-a", "Google Chrome", "https://github.com")]


def test_desktop_quit_app_requires_running_app(monkeypatch, config):
    async def fake_run(*args):
        return 0, "false"

    monkeypatch.setattr(actions, "_run", fake_run)
    outcome = asyncio.run(DesktopExecutor(config).execute("quit_app", {"app_name": "slack"}))
    assert not outcome.success
    assert outcome.error == "Application not found: Slack"


def test_scroll_aliases_imply_direction():
    action = parse_action("scroll_up", {"amount": 2})
    assert action.params.direction == "up"
    assert action.params.amount == 2
    assert normalize_step("scroll_down", None) == ("scroll", {"direction": "down"})
    assert normalize_step("scroll_down", {"direction": "left"}) == ("scroll", {"direction": "left"})


class SlowGui:
    def __init__(self):
        self.typed = []

    def write(self, text, interval=0):
        for char in text:
            time.sleep(0.01)
            self.typed.append(char)


def test_desktop_typing_does_not_block_event_loop(monkeypatch, config):
    gui = SlowGui()
    monkeypatch.setattr(actions, "_gui", lambda: gui)
    executor = DesktopExecutor(config)
    ticks = []

    async def ticker():
        while True:
            ticks.append(time.monotonic())
            await asyncio.sleep(0.005)

    async def scenario():
        task = asyncio.create_task(ticker())
        await asyncio.sleep(0)
        outcome = await executor.execute("type_text", {"text": "x" * 20})
        task.cancel()
        return outcome

    outcome = asyncio.run(scenario())
    assert outcome.success
    assert "".join(gui.typed) == "x" * 20
    assert len(ticks) >= 5

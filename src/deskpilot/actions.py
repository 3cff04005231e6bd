"""Action vocabulary, typed parameters and executors."""

from __future__ import annotations

import asyncio
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from deskpilot.config import Configuration
from deskpilot.util.logging import get_logger


logger = get_logger(__name__)


class ActionSpecError(ValueError):
    """Raised when an action name or its parameters are not understood."""


class ActionKind(str, Enum):
    ACTIVATE_APP = "activate_app"
    QUIT_APP = "quit_app"
    OPEN_URL = "open_url"
    CLICK = "click"
    DOUBLE_CLICK = "double_click"
    RIGHT_CLICK = "right_click"
    MOVE_TO = "move_to"
    SCROLL = "scroll"
    TYPE_TEXT = "type_text"
    PRESS_KEY = "press_key"
    WAIT = "wait"
    CLICK_ELEMENT = "click_element"
    IDLE = "idle"


class ActionParams(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)


class AppParams(ActionParams):
    app_name: str = Field(alias="appName", min_length=1)


class UrlParams(ActionParams):
    url: str = Field(min_length=1)
    browser: str | None = None


class PointParams(ActionParams):
    x: int
    y: int

    @field_validator("x", "y", mode="before")
    @classmethod
    def _floor_floats(cls, value: Any) -> Any:
        if isinstance(value, float):
            return math.floor(value)
        return value


class ScrollParams(ActionParams):
    direction: Literal["up", "down", "left", "right"]
    amount: int = Field(default=3, ge=1)


class TextParams(ActionParams):
    text: str


class KeyParams(ActionParams):
    key: str = Field(min_length=1)
    modifiers: list[str] = Field(default_factory=list)


class WaitParams(ActionParams):
    seconds: float = Field(default=1, ge=0)


class ElementParams(ActionParams):
    description: str = Field(min_length=1)


class IdleParams(ActionParams):
    reason: str = ""


ACTION_PARAMS: dict[ActionKind, type[ActionParams]] = {
    ActionKind.ACTIVATE_APP: AppParams,
    ActionKind.QUIT_APP: AppParams,
    ActionKind.OPEN_URL: UrlParams,
    ActionKind.CLICK: PointParams,
    ActionKind.DOUBLE_CLICK: PointParams,
    ActionKind.RIGHT_CLICK: PointParams,
    ActionKind.MOVE_TO: PointParams,
    ActionKind.SCROLL: ScrollParams,
    ActionKind.TYPE_TEXT: TextParams,
    ActionKind.PRESS_KEY: KeyParams,
    ActionKind.WAIT: WaitParams,
    ActionKind.CLICK_ELEMENT: ElementParams,
    ActionKind.IDLE: IdleParams,
}

ACTION_PARAMS_BY_VALUE = {kind.value: kind for kind in ACTION_PARAMS}

ACTION_ALIASES = {
    "activate": ActionKind.ACTIVATE_APP,
    "launch": ActionKind.ACTIVATE_APP,
    "open_app": ActionKind.ACTIVATE_APP,
    "start": ActionKind.ACTIVATE_APP,
    "quit": ActionKind.QUIT_APP,
    "close": ActionKind.QUIT_APP,
    "kill": ActionKind.QUIT_APP,
    "open": ActionKind.OPEN_URL,
    "url": ActionKind.OPEN_URL,
    "browse": ActionKind.OPEN_URL,
    "tap": ActionKind.CLICK_ELEMENT,
    "press": ActionKind.CLICK_ELEMENT,
    "type": ActionKind.TYPE_TEXT,
    "input": ActionKind.TYPE_TEXT,
    "write": ActionKind.TYPE_TEXT,
    "key": ActionKind.PRESS_KEY,
    "hotkey": ActionKind.PRESS_KEY,
    "shortcut": ActionKind.PRESS_KEY,
    "scroll_up": ActionKind.SCROLL,
    "scroll_down": ActionKind.SCROLL,
    "sleep": ActionKind.WAIT,
    "delay": ActionKind.WAIT,
}

APP_NAMES = {
    "chrome": "Google Chrome",
    "safari": "Safari",
    "firefox": "Firefox",
    "vscode": "Visual Studio Code",
    "code": "Visual Studio Code",
    "terminal": "Terminal",
    "iterm": "iTerm",
    "iterm2": "iTerm",
    "slack": "Slack",
    "discord": "Discord",
    "zoom": "zoom.us",
    "teams": "Microsoft Teams",
    "word": "Microsoft Word",
    "excel": "Microsoft Excel",
    "powerpoint": "Microsoft PowerPoint",
    "outlook": "Microsoft Outlook",
    "notes": "Notes",
    "mail": "Mail",
    "calendar": "Calendar",
    "messages": "Messages",
    "facetime": "FaceTime",
    "finder": "Finder",
    "preview": "Preview",
    "textedit": "TextEdit",
    "activity monitor": "Activity Monitor",
    "system preferences": "System Preferences",
    "system settings": "System Settings",
    "spotify": "Spotify",
}

SITE_URLS = {
    "youtube": "https://www.youtube.com",
    "google": "https://www.google.com",
    "github": "https://github.com",
    "reddit": "https://www.reddit.com",
    "twitter": "https://x.com",
    "x": "https://x.com",
    "facebook": "https://www.facebook.com",
    "amazon": "https://www.amazon.com",
    "netflix": "https://www.netflix.com",
    "spotify": "https://open.spotify.com",
}

_SCROLL_ALIASES = {"scroll_up": "up", "scroll_down": "down"}

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def normalize_action(name: str) -> str:
    """Map loose action names onto the vocabulary; known names pass through."""
    cleaned = name.strip()
    lowered = cleaned.lower()
    if lowered in ACTION_PARAMS_BY_VALUE:
        return lowered
    alias = ACTION_ALIASES.get(lowered)
    return alias.value if alias else cleaned


def normalize_step(name: str, params: Any) -> tuple[str, Any]:
    """Normalise an action name, filling in the direction implied by scroll aliases."""
    direction = _SCROLL_ALIASES.get(name.strip().lower())
    if direction and (params is None or isinstance(params, dict)):
        if "direction" not in (params or {}):
            params = {**(params or {}), "direction": direction}
    return normalize_action(name), params


def normalize_app_name(app_name: str) -> str:
    return APP_NAMES.get(app_name.strip().lower(), app_name)


def normalize_url(url: str) -> str:
    stripped = url.strip()
    if _SCHEME_RE.match(stripped):
        return stripped
    mapped = SITE_URLS.get(stripped.lower())
    if mapped:
        return mapped
    return f"https://{stripped}"


@dataclass(frozen=True)
class Action:
    kind: ActionKind
    params: ActionParams


def parse_action(name: str, params: dict[str, Any] | None = None) -> Action:
    """Build a typed action from an oracle-supplied name and parameter map."""
    normalized, params = normalize_step(name or "", params)
    kind = ACTION_PARAMS_BY_VALUE.get(normalized)
    if kind is None:
        raise ActionSpecError(f"Unknown action: {name}")
    if params is not None and not isinstance(params, dict):
        raise ActionSpecError(f"Parameters for {kind.value} must be an object")
    try:
        typed = ACTION_PARAMS[kind].model_validate(params or {})
    except ValidationError as exc:
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc']) or 'params'}: {error['msg']}"
            for error in exc.errors()
        )
        raise ActionSpecError(f"Invalid parameters for {kind.value}: {problems}") from exc
    return Action(kind=kind, params=typed)


@dataclass(frozen=True)
class ActionOutcome:
    success: bool
    error: str | None = None


Handler = Callable[[Any], Awaitable[ActionOutcome]]


class ActionExecutor(ABC):
    """Runs primitive actions; the agent resolves ``click_element`` itself."""

    def __init__(self) -> None:
        self._handlers: dict[ActionKind, Handler] = {
            ActionKind.ACTIVATE_APP: self.activate_app,
            ActionKind.QUIT_APP: self.quit_app,
            ActionKind.OPEN_URL: self.open_url,
            ActionKind.CLICK: self.click,
            ActionKind.DOUBLE_CLICK: self.double_click,
            ActionKind.RIGHT_CLICK: self.right_click,
            ActionKind.MOVE_TO: self.move_to,
            ActionKind.SCROLL: self.scroll,
            ActionKind.TYPE_TEXT: self.type_text,
            ActionKind.PRESS_KEY: self.press_key,
            ActionKind.WAIT: self.wait,
        }

    async def execute(self, name: str, params: dict[str, Any] | None = None) -> ActionOutcome:
        try:
            action = parse_action(name, params)
        except ActionSpecError as exc:
            return ActionOutcome(success=False, error=str(exc))
        return await self.dispatch(action)

    async def dispatch(self, action: Action) -> ActionOutcome:
        handler = self._handlers.get(action.kind)
        if handler is None:
            return ActionOutcome(
                success=False, error=f"{action.kind.value} cannot be executed directly"
            )
        try:
            return await handler(action.params)
        except Exception as exc:
            logger.exception("Action %s raised.", action.kind.value)
            return ActionOutcome(success=False, error=f"{action.kind.value} failed: {exc}")

    @abstractmethod
    async def activate_app(self, params: AppParams) -> ActionOutcome: ...

    @abstractmethod
    async def quit_app(self, params: AppParams) -> ActionOutcome: ...

    @abstractmethod
    async def open_url(self, params: UrlParams) -> ActionOutcome: ...

    @abstractmethod
    async def click(self, params: PointParams) -> ActionOutcome: ...

    @abstractmethod
    async def double_click(self, params: PointParams) -> ActionOutcome: ...

    @abstractmethod
    async def right_click(self, params: PointParams) -> ActionOutcome: ...

    @abstractmethod
    async def move_to(self, params: PointParams) -> ActionOutcome: ...

    @abstractmethod
    async def scroll(self, params: ScrollParams) -> ActionOutcome: ...

    @abstractmethod
    async def type_text(self, params: TextParams) -> ActionOutcome: ...

    @abstractmethod
    async def press_key(self, params: KeyParams) -> ActionOutcome: ...

    async def wait(self, params: WaitParams) -> ActionOutcome:
        await asyncio.sleep(params.seconds)
        return ActionOutcome(success=True)


_KEY_NAMES = {
    "return": "enter",
    "enter": "enter",
    "escape": "esc",
    "esc": "esc",
    "tab": "tab",
    "space": "space",
    "delete": "backspace",
    "backspace": "backspace",
    "up": "up",
    "down": "down",
    "left": "left",
    "right": "right",
    "pageup": "pageup",
    "pagedown": "pagedown",
    "home": "home",
    "end": "end",
}

_MODIFIER_NAMES = {
    "cmd": "command",
    "command": "command",
    "shift": "shift",
    "alt": "option",
    "option": "option",
    "ctrl": "ctrl",
    "control": "ctrl",
    "fn": "fn",
}


def _gui() -> Any:
    # Imported on first use: pyautogui connects to the display at import time.
    import pyautogui

    return pyautogui


async def _input(method: str, *args: Any, **kwargs: Any) -> None:
    # pyautogui blocks (and sleeps PAUSE after each call), so run it off the loop.
    await asyncio.to_thread(getattr(_gui(), method), *args, **kwargs)


async def _run(*args: str) -> tuple[int, str]:
    process = await asyncio.create_subprocess_exec(
        *args, stdout=asyncio.subprocess.PIPE, stderr=asyncio.subprocess.PIPE
    )
    stdout, stderr = await process.communicate()
    output = (stdout or b"").decode().strip() or (stderr or b"").decode().strip()
    return process.returncode or 0, output


def _applescript_string(value: str) -> str:
    return value.replace("\\", "\\\\").replace('"', '\\"')


class DesktopExecutor(ActionExecutor):
    """macOS executor: pyautogui for input, ``open``/``osascript`` for apps."""

    def __init__(self, config: Configuration) -> None:
        super().__init__()
        self.config = config

    async def activate_app(self, params: AppParams) -> ActionOutcome:
        app_name = normalize_app_name(params.app_name)
        code, output = await _run("open", "-a", app_name)
        if code != 0:
            return ActionOutcome(success=False, error=f"Failed to launch {app_name}: {output}")
        await asyncio.sleep(self.config.current.app_launch_wait_seconds)
        return ActionOutcome(success=True)

    async def quit_app(self, params: AppParams) -> ActionOutcome:
        app_name = _applescript_string(normalize_app_name(params.app_name))
        _, running = await _run("osascript", "-e", f'application "{app_name}" is running')
        if running != "true":
            return ActionOutcome(success=False, error=f"Application not found: {app_name}")
        code, output = await _run("osascript", "-e", f'tell application "{app_name}" to quit')
        if code != 0:
            return ActionOutcome(success=False, error=f"Failed to quit {app_name}: {output}")
        return ActionOutcome(success=True)

    async def open_url(self, params: UrlParams) -> ActionOutcome:
        url = normalize_url(params.url)
        if params.browser:
            browser = normalize_app_name(params.browser)
            code, output = await _run("open", "-a", browser, url)
            if code != 0:
                return ActionOutcome(
                    success=False, error=f"Failed to open URL in {browser}: {output}"
                )
            return ActionOutcome(success=True)
        code, output = await _run("open", url)
        if code != 0:
            return ActionOutcome(success=False, error=f"Failed to open URL: {output}")
        return ActionOutcome(success=True)

    async def _press(self, x: int, y: int, button: str) -> None:
        await _input("moveTo", x, y)
        await _input("mouseDown", button=button)
        await asyncio.sleep(self.config.current.click_hold_seconds)
        await _input("mouseUp", button=button)

    async def click(self, params: PointParams) -> ActionOutcome:
        await self._press(params.x, params.y, "left")
        return ActionOutcome(success=True)

    async def double_click(self, params: PointParams) -> ActionOutcome:
        await self._press(params.x, params.y, "left")
        await asyncio.sleep(self.config.current.double_click_interval_seconds)
        await self._press(params.x, params.y, "left")
        return ActionOutcome(success=True)

    async def right_click(self, params: PointParams) -> ActionOutcome:
        await self._press(params.x, params.y, "right")
        return ActionOutcome(success=True)

    async def move_to(self, params: PointParams) -> ActionOutcome:
        await _input("moveTo", params.x, params.y)
        return ActionOutcome(success=True)

    async def scroll(self, params: ScrollParams) -> ActionOutcome:
        if params.direction == "up":
            await _input("scroll", params.amount)
        elif params.direction == "down":
            await _input("scroll", -params.amount)
        else:
            await _input("hotkey", "shift", params.direction)
        return ActionOutcome(success=True)

    async def type_text(self, params: TextParams) -> ActionOutcome:
        await _input("write", params.text, interval=self.config.current.type_interval_seconds)
        return ActionOutcome(success=True)

    async def press_key(self, params: KeyParams) -> ActionOutcome:
        key = _KEY_NAMES.get(params.key.lower(), params.key.lower())
        modifiers = []
        for modifier in params.modifiers:
            mapped = _MODIFIER_NAMES.get(modifier.lower())
            if mapped is None:
                return ActionOutcome(success=False, error=f"Unknown modifier: {modifier}")
            modifiers.append(mapped)
        await _input("hotkey", *modifiers, key)
        return ActionOutcome(success=True)

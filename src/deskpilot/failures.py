"""Failure taxonomy for session results."""

from __future__ import annotations

from enum import Enum


class ErrorType(str, Enum):
    """Category attached to every failed session result."""

    API = "api"
    VISION = "vision"
    ACTION = "action"
    TIMEOUT = "timeout"
    PARSE = "parse"

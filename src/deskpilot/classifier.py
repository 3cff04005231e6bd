"""Keyword heuristics deciding whether a command needs visual grounding."""

from __future__ import annotations


SIMPLE_KEYWORDS = (
    "open",
    "launch",
    "start",
    "quit",
    "close",
    "exit",
    "go to",
    "navigate to",
    "visit",
    "search youtube for",
    "search google for",
    "google ",
    "youtube ",
)

COMPLEX_KEYWORDS = (
    "click",
    "find",
    "most popular",
    "first result",
    "best",
    "select",
    "choose",
    "pick",
    "look for",
    "locate",
    "identify",
    "fill",
    "form",
    "cheapest",
    "highest",
    "lowest",
    "compare",
    "book",
    "reserve",
    "buy ticket",
)


def classify_complexity(command: str) -> bool:
    """Return ``True`` when ``command`` likely needs the vision loop.

    Complex keywords win over simple ones, and a command matching neither
    list is treated as complex.
    """
    normalized = command.lower()
    if any(keyword in normalized for keyword in COMPLEX_KEYWORDS):
        return True
    if any(keyword in normalized for keyword in SIMPLE_KEYWORDS):
        return False
    return True

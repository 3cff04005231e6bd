import pytest

from deskpilot.classifier import classify_complexity


def test_complex_keyword_wins_over_simple_keyword():
    assert classify_complexity("open Safari and click subscribe") is True


@pytest.mark.parametrize(
    "command",
    ["Open Safari", "quit Slack", "go to github.com", "search youtube for cooking tutorials"],
)
def test_simple_commands(command):
    assert classify_complexity(command) is False


@pytest.mark.parametrize(
    "command",
    ["Find the cheapest flight", "BOOK a table", "play the most popular video"],
)
def test_complex_commands(command):
    assert classify_complexity(command) is True


def test_unmatched_command_defaults_to_complex():
    assert classify_complexity("make it nicer") is True

"""Command-line interface."""

from __future__ import annotations

import argparse
import asyncio
import json
from typing import Any

from deskpilot.classifier import classify_complexity
from deskpilot.config import Configuration, Settings
from deskpilot.facade import DeskPilot
from deskpilot.factory import build_oracle
from deskpilot.intent import IntentParseError
from deskpilot.models.base import OracleError


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="DeskPilot CLI")
    parser.add_argument("command", type=str, help="Natural-language command to run")
    parser.add_argument("--model", dest="model")
    parser.add_argument("--max-iterations", type=int, dest="max_iterations")
    parser.add_argument("--history-limit", type=int, dest="history_limit")
    parser.add_argument("--trace-dir", dest="trace_dir")
    parser.add_argument("--vision", action="store_true", dest="vision")
    parser.add_argument("--dry-run-plan", action="store_true", dest="dry_run_plan")
    parser.add_argument(
        "--mock-reply",
        action="append",
        dest="mock_replies",
        help="Scripted oracle reply for offline runs; repeat for each call",
    )
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args: argparse.Namespace) -> Settings:
    data: dict[str, Any] = settings.model_dump()
    if args.model:
        data["model"] = args.model
    if args.max_iterations:
        data["max_iterations"] = args.max_iterations
    if args.history_limit:
        data["history_limit"] = args.history_limit
    if args.trace_dir:
        data["trace_dir"] = args.trace_dir
    return Settings(**data)


async def run(args: argparse.Namespace, pilot: DeskPilot) -> dict[str, Any]:
    if args.dry_run_plan:
        if not pilot.is_configured():
            return (await pilot.execute(args.command)).model_dump(mode="json")
        try:
            intent = await pilot.agent.resolve(args.command)
        except (OracleError, IntentParseError) as exc:
            return {"success": False, "message": "Failed to parse command", "error": str(exc)}
        return {
            "intent": intent.model_dump(by_alias=True),
            "keyword_hint_complex": classify_complexity(args.command),
        }
    result = await pilot.execute(args.command, force_vision=args.vision)
    return result.model_dump(mode="json")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    settings = apply_overrides(Settings(), args)
    oracle = None
    if args.mock_replies:
        oracle = build_oracle(Configuration(settings), use_mock=True, scripted=args.mock_replies)
    pilot = DeskPilot(settings, oracle=oracle)
    payload = asyncio.run(run(args, pilot))
    print(json.dumps(payload, indent=2))
    if "success" in payload:
        return 0 if payload["success"] else 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

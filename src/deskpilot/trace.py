"""Trace recorder for automation sessions."""

from __future__ import annotations

import json
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from deskpilot.util.logging import redact


@dataclass
class TraceRecorder:
    trace_id: str
    trace_dir: str
    started_at: float = field(default_factory=time.time)
    events: list[dict[str, Any]] = field(default_factory=list)

    def record(self, event_type: str, payload: dict[str, Any]) -> None:
        self.events.append(
            {
                "type": event_type,
                "timestamp": time.time(),
                "payload": payload,
            }
        )

    def record_intent(self, command: str, intent: dict[str, Any]) -> None:
        self.record("intent", {"command": redact(command), "intent": intent})

    def record_observation(self, description: str) -> None:
        self.record("observation", {"description": redact(description)})

    def record_plan(self, decision: dict[str, Any]) -> None:
        self.record("plan", {"decision": decision})

    def record_action(
        self, action: str, params: dict[str, Any], success: bool, error: str | None
    ) -> None:
        self.record(
            "action",
            {"action": action, "params": params, "success": success, "error": error},
        )

    def finalize(self, result: dict[str, Any]) -> str:
        trace_dir = Path(self.trace_dir)
        trace_dir.mkdir(parents=True, exist_ok=True)
        trace_path = trace_dir / f"{self.trace_id}.json"
        payload = {
            "trace_id": self.trace_id,
            "started_at": self.started_at,
            "ended_at": time.time(),
            "result": result,
            "events": self.events,
        }
        trace_path.write_text(json.dumps(payload, indent=2, default=str), encoding="utf-8")
        return str(trace_path)

import asyncio
import json

from deskpilot.agent import AgentLoop
from deskpilot.models.mock import ScriptedOracle
from deskpilot.trace import TraceRecorder
from conftest import no_sleep


def test_trace_recorder_redacts_and_writes(tmp_path):
    trace = TraceRecorder(trace_id="abc", trace_dir=str(tmp_path / "traces"))
    trace.record_observation("token sk-ant-secret123 on screen")
    path = trace.finalize({"success": True})
    payload = json.loads(open(path, encoding="utf-8").read())
    assert payload["trace_id"] == "abc"
    assert payload["result"] == {"success": True}
    assert payload["events"][0]["payload"]["description"] == "token [REDACTED] on screen"


def test_session_trace_written_when_configured(tmp_path, config, capture, executor):
    config.update(trace_dir=str(tmp_path))
    intent = json.dumps(
        {"goal": "open notes", "steps": [{"action": "activate_app", "params": {"app_name": "Notes"}}]}
    )
    agent = AgentLoop(ScriptedOracle([intent]), capture, executor, config, sleep=no_sleep)
    result = asyncio.run(agent.run("open notes"))
    assert result.trace_path is not None
    payload = json.loads(open(result.trace_path, encoding="utf-8").read())
    assert [event["type"] for event in payload["events"]] == ["intent", "action", "terminal"]
    assert payload["result"]["success"] is True
    assert payload["events"][0]["payload"]["intent"]["requiresObservation"] is False


def test_no_trace_without_directory(config, capture, executor):
    agent = AgentLoop(ScriptedOracle([]), capture, executor, config, sleep=no_sleep)
    result = asyncio.run(agent.execute_steps([]))
    assert result.success
    assert result.trace_path is None

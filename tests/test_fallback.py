import asyncio
import logging

import pytest

from meeting_agents.core.errors import BackendUnavailable
from meeting_agents.stages.base import ServiceUsed, StageResult, remote_then_local


def test_remote_success_skips_local():
    calls = []
    payload, service = asyncio.run(remote_then_local("x", lambda: "remote", lambda: calls.append("local")))
    assert (payload, service) == ("remote", ServiceUsed.REMOTE)
    assert calls == []


class _ListHandler(logging.Handler):
    def __init__(self):
        super().__init__(logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_remote_failure_is_logged_and_local_runs():
    def remote():
        raise BackendUnavailable("timeout")

    log = logging.getLogger("meeting_agents.stages.base")
    handler = _ListHandler()
    log.addHandler(handler)
    previous_level = log.level
    log.setLevel(logging.INFO)
    try:
        payload, service = asyncio.run(remote_then_local("summary", remote, lambda: "local"))
    finally:
        log.removeHandler(handler)
        log.setLevel(previous_level)
    assert (payload, service) == ("local", ServiceUsed.LOCAL)
    warnings = [r for r in handler.records if r.levelno == logging.WARNING]
    assert any("falling back to local" in r.getMessage() for r in warnings)


def test_no_remote_goes_straight_to_local():
    assert asyncio.run(remote_then_local("x", None, lambda: 42)) == (42, ServiceUsed.LOCAL)


def test_local_errors_propagate():
    def local():
        raise ValueError("bad input")

    with pytest.raises(ValueError):
        asyncio.run(remote_then_local("x", None, local))


def test_stage_result_serialization():
    ok = StageResult.ok({"a": 1}, ServiceUsed.LOCAL, degraded=False).to_dict()
    assert ok["success"] is True
    assert ok["metadata"]["service_used"] == "local"
    assert ok["metadata"]["degraded"] is False
    assert "timestamp" in ok["metadata"]

    failed = StageResult.failed("nope").to_dict()
    assert failed == {"success": False, "payload": None, "error": "nope", "metadata": failed["metadata"]}
    assert failed["metadata"]["service_used"] is None

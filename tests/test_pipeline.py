from __future__ import annotations

from typing import Any, Dict, List

import pytest

from kiosk_installer.errors import DeploymentError
from kiosk_installer.lib.command import CmdResult, CommandError
from kiosk_installer.pipeline import run_pipeline


class RecordingStep:
    def __init__(self, step_id: str, log: List[str], exc: Exception | None = None):
        self.step_id = step_id
        self.title = step_id
        self._log = log
        self._exc = exc

    def run(self, ctx, state: Dict[str, Any]) -> Dict[str, Any]:
        self._log.append(self.step_id)
        if self._exc is not None:
            raise self._exc
        return state


def _steps(log, **failures):
    return [RecordingStep(sid, log, failures.get(sid)) for sid in ("a", "b", "c", "d")]


def test_runs_every_step_in_order(ctx):
    log: List[str] = []
    result = run_pipeline(ctx=ctx, state={}, steps=_steps(log))

    assert log == ["a", "b", "c", "d"]
    assert result.ok
    assert result.ran_steps == ["a", "b", "c", "d"]
    assert result.state["execution"]["completed_steps"] == ["a", "b", "c", "d"]
    assert result.state["execution"]["current_step"] is None


def test_rerun_does_not_skip_completed_steps(ctx):
    log: List[str] = []
    first = run_pipeline(ctx=ctx, state={}, steps=_steps(log))
    run_pipeline(ctx=ctx, state=first.state, steps=_steps(log))

    assert log == ["a", "b", "c", "d"] * 2


def test_stops_at_first_fatal_failure_and_names_it(ctx):
    log: List[str] = []
    result = run_pipeline(ctx=ctx, state={}, steps=_steps(log, b=DeploymentError("no dist")))

    assert log == ["a", "b"]
    assert not result.ok
    assert result.failed_step == "b"
    assert result.error == "no dist"
    assert result.state["execution"]["failed_step"] == "b"
    assert result.state["execution"]["errors"] == [{"step": "b", "error": "no dist"}]


def test_failed_required_command_is_fatal(ctx):
    log: List[str] = []
    err = CommandError(CmdResult(argv=["sudo", "nginx", "-t"], returncode=1, stdout="", stderr="emerg"))
    result = run_pipeline(ctx=ctx, state={}, steps=_steps(log, c=err))

    assert result.failed_step == "c"
    assert "nginx -t" in result.error
    assert log == ["a", "b", "c"]


def test_unexpected_exceptions_propagate(ctx):
    with pytest.raises(KeyError):
        run_pipeline(ctx=ctx, state={}, steps=_steps([], a=KeyError("bug")))


def test_start_at_and_stop_after(ctx):
    log: List[str] = []
    result = run_pipeline(ctx=ctx, state={}, steps=_steps(log), start_at="b", stop_after="c")

    assert log == ["b", "c"]
    assert result.skipped_steps == ["a"]
    assert result.ran_steps == ["b", "c"]


def test_unknown_step_id_rejected(ctx):
    with pytest.raises(ValueError, match="unknown step 'zz'"):
        run_pipeline(ctx=ctx, state={}, steps=_steps([]), start_at="zz")

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, Sequence

from .config import KioskConfig
from .errors import ProvisionError
from .lib.command import CommandError
from .lib.host import Host
from .state_store import mark_step_completed, record_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvisionCtx:
    cfg: KioskConfig
    host: Host

    @property
    def dry_run(self) -> bool:
        return self.host.dry_run


class Step(Protocol):
    """A single idempotent provisioning stage."""

    step_id: str
    title: str

    def run(self, ctx: ProvisionCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        ...


@dataclass(frozen=True)
class PipelineResult:
    state: Dict[str, Any]
    ran_steps: List[str]
    skipped_steps: List[str]
    failed_step: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failed_step is None


def _check_step_id(steps: Sequence[Step], step_id: Optional[str], flag: str) -> None:
    if step_id is None:
        return
    known = [s.step_id for s in steps]
    if step_id not in known:
        raise ValueError(f"{flag}: unknown step {step_id!r} (known: {', '.join(known)})")


def run_pipeline(
    *,
    ctx: ProvisionCtx,
    state: Dict[str, Any],
    steps: Sequence[Step],
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
) -> PipelineResult:
    """Run steps strictly in order; stop at the first fatal failure.

    Every step re-runs on every invocation: convergence comes from each step
    being idempotent, not from skipping work. A ProvisionError or a failed
    required command ends the run and names the failing step; nothing is
    rolled back.
    """

    _check_step_id(steps, start_at, "start_at")
    _check_step_id(steps, stop_after, "stop_after")

    ran: List[str] = []
    skipped: List[str] = []

    started = start_at is None
    exe = state.setdefault("execution", {})
    exe["failed_step"] = None

    for step in steps:
        if not started:
            if step.step_id == start_at:
                started = True
            else:
                skipped.append(step.step_id)
                continue

        exe["current_step"] = step.step_id
        logger.info("Running step %s (%s)", step.step_id, step.title)

        try:
            state = step.run(ctx, state)
        except (ProvisionError, CommandError) as e:
            logger.error("%s failed: %s", step.step_id, e)
            exe = state.setdefault("execution", {})
            exe["current_step"] = None
            exe["failed_step"] = step.step_id
            record_error(state, step.step_id, str(e))
            return PipelineResult(
                state=state,
                ran_steps=ran,
                skipped_steps=skipped,
                failed_step=step.step_id,
                error=str(e),
            )

        exe = state.setdefault("execution", {})
        mark_step_completed(state, step.step_id)
        ran.append(step.step_id)

        if stop_after is not None and step.step_id == stop_after:
            logger.info("Stopping after %s", stop_after)
            break

    exe["current_step"] = None
    return PipelineResult(state=state, ran_steps=ran, skipped_steps=skipped)

from __future__ import annotations

import argparse
import logging
from typing import Any, Dict, List, Optional

from . import __version__
from .config import KioskConfig, load_config
from .lib.command import run_cmd
from .lib.host import Host, Runner
from .logging_utils import configure_logging, prepare_log_file
from .pipeline import PipelineResult, ProvisionCtx, Step, run_pipeline
from .state_store import DEFAULT_STATE_PATH, load_state, new_run, record_error, save_state
from .steps import (
    CheckPrivilegesStep,
    ConfigureDisplayManagerStep,
    ConfigureNginxStep,
    CreateDisplayServiceStep,
    CreateServiceUserStep,
    DeployProjectStep,
    FinalizeStep,
    InstallManagementScriptsStep,
    InstallNodeStep,
    InstallPackagesStep,
)

logger = logging.getLogger(__name__)


def build_steps() -> List[Step]:
    return [
        CheckPrivilegesStep(),
        InstallPackagesStep(),
        InstallNodeStep(),
        CreateServiceUserStep(),
        DeployProjectStep(),
        ConfigureNginxStep(),
        CreateDisplayServiceStep(),
        ConfigureDisplayManagerStep(),
        InstallManagementScriptsStep(),
        FinalizeStep(),
    ]


def _load_previous(state_path: str) -> Dict[str, Any]:
    try:
        return load_state(state_path)
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable run record %s: %s", state_path, e)
        return {}


def run(
    *,
    cfg: KioskConfig,
    state_path: str = DEFAULT_STATE_PATH,
    log_path: Optional[str] = None,
    start_at: Optional[str] = None,
    stop_after: Optional[str] = None,
    resume: bool = False,
    dry_run: bool = False,
    runner: Runner = run_cmd,
    steps: Optional[List[Step]] = None,
) -> PipelineResult:
    """Run the provisioning pipeline and persist the run record."""

    host = Host(runner=runner, dry_run=dry_run)
    log_path = log_path or cfg.log_path

    # As root the privilege check fails first, and nothing may be written before it:
    # no log file and no run record.
    as_root = host.euid() == 0
    if not as_root:
        prepare_log_file(log_path, host)
    configure_logging(log_path=None if as_root else log_path)

    logger.info("%s installer v%s starting%s", cfg.display_title, __version__, " (dry run)" if dry_run else "")

    previous = _load_previous(state_path)
    state = new_run(previous, cfg.as_dict())

    if resume:
        start_at = (previous.get("execution") or {}).get("failed_step")
        if start_at:
            logger.info("Resuming at %s (failed in previous run)", start_at)
        else:
            logger.info("Previous run did not fail; running all steps")

    ctx = ProvisionCtx(cfg=cfg, host=host)

    try:
        result = run_pipeline(
            ctx=ctx,
            state=state,
            steps=steps if steps is not None else build_steps(),
            start_at=start_at,
            stop_after=stop_after,
        )
        state = result.state
        exe = state.setdefault("execution", {})
        exe["ran_steps"] = result.ran_steps
        exe["skipped_steps"] = result.skipped_steps
        return result
    except Exception as e:
        logger.exception("Installer failed")
        record_error(state, (state.get("execution") or {}).get("current_step") or "", str(e))
        raise
    finally:
        if as_root:
            logger.info("Running as root; run record %s left untouched", state_path)
        else:
            _save(state_path, state)


def _save(state_path: str, state: Dict[str, Any]) -> None:
    try:
        save_state(state_path, state)
    except OSError as e:
        logger.warning("Could not save run record %s: %s", state_path, e)


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="kiosk-installer", description="Provision a Raspberry Pi as a menu kiosk")
    p.add_argument("--config", default=None, help="YAML file overriding the built-in defaults")
    p.add_argument("--log", default=None, help="Installer log file (default: config log_path)")
    p.add_argument("--state", default=DEFAULT_STATE_PATH, help="Run record path (json|yaml)")
    p.add_argument("--start-at", default=None, help="Start at step_id (e.g. 40_deploy_project)")
    p.add_argument("--stop-after", default=None, help="Stop after step_id")
    p.add_argument("--resume", action="store_true", help="Start at the step that failed in the last run")
    p.add_argument("--dry-run", action="store_true", help="Log commands without executing them")
    p.add_argument("--list-steps", action="store_true", help="Print step ids and exit")

    args = p.parse_args(argv)

    if args.list_steps:
        for step in build_steps():
            print(f"{step.step_id}\t{step.title}")
        return 0

    if args.resume and args.start_at:
        p.error("--resume and --start-at are mutually exclusive")

    known = [step.step_id for step in build_steps()]
    for flag, value in (("--start-at", args.start_at), ("--stop-after", args.stop_after)):
        if value is not None and value not in known:
            p.error(f"{flag}: unknown step {value!r} (see --list-steps)")

    cfg = load_config(args.config)

    result = run(
        cfg=cfg,
        state_path=args.state,
        log_path=args.log,
        start_at=args.start_at,
        stop_after=args.stop_after,
        resume=bool(args.resume),
        dry_run=bool(args.dry_run),
    )
    return 0 if result.ok else 1

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)

DEFAULT_STATE_PATH = str(Path.home() / ".local/state/kiosk-installer/state.json")


def _is_yaml(path: Path) -> bool:
    # Anything that is not .yaml/.yml is written as JSON.
    return path.suffix.lower() in (".yaml", ".yml")


def _yaml():
    try:
        import yaml  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError(
            "YAML run record requested but PyYAML is not available. Use a .json state path."
        ) from e
    return yaml


def load_state(path: str) -> Dict[str, Any]:
    """Read the last run record; a missing file is an empty record."""

    src = Path(path)
    if not src.is_file():
        return {}

    text = src.read_text(encoding="utf-8")
    data = (_yaml().safe_load(text) or {}) if _is_yaml(src) else json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"{path}: run record must be a mapping, got {type(data).__name__}")
    return data


def save_state(path: str, state: Dict[str, Any]) -> None:
    dest = Path(path)
    dest.parent.mkdir(parents=True, exist_ok=True)
    if _is_yaml(dest):
        text = _yaml().safe_dump(state, sort_keys=False)
    else:
        text = json.dumps(state, indent=2, sort_keys=True) + "\n"
    dest.write_text(text, encoding="utf-8")
    logger.debug("Saved run record to %s", dest)


def new_run(previous: Dict[str, Any], config: Dict[str, Any]) -> Dict[str, Any]:
    """Start a fresh run record, keeping only what --resume needs from the last one."""

    prev_exe = previous.get("execution") or {}
    return {
        "config": config,
        "previous": {
            "failed_step": prev_exe.get("failed_step"),
            "started_at": prev_exe.get("started_at"),
        },
        "execution": {
            "started_at": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            "current_step": None,
            "failed_step": None,
            "completed_steps": [],
            "errors": [],
            "decisions": {},
        },
    }


def decisions(state: Dict[str, Any]) -> Dict[str, Any]:
    return state.setdefault("execution", {}).setdefault("decisions", {})


def mark_step_completed(state: Dict[str, Any], step_id: str) -> None:
    exe = state.setdefault("execution", {})
    completed = exe.setdefault("completed_steps", [])
    if step_id not in completed:
        completed.append(step_id)


def record_error(state: Dict[str, Any], step_id: str, error: str) -> None:
    state.setdefault("execution", {}).setdefault("errors", []).append({"step": step_id, "error": error})

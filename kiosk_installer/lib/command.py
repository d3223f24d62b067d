from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Mapping, Sequence

logger = logging.getLogger(__name__)

# Shell convention for "command not found".
NOT_FOUND = 127


@dataclass(frozen=True)
class CmdResult:
    argv: list[str]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandError(RuntimeError):
    """A required command exited non-zero."""

    def __init__(self, result: CmdResult):
        self.result = result
        detail = result.stderr.strip()
        msg = f"Command failed ({result.returncode}): {fmt_argv(result.argv)}"
        super().__init__(f"{msg}\n{detail}" if detail else msg)


def fmt_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def _execute(argv: list[str], env, cwd, input_text) -> CmdResult:
    try:
        proc = subprocess.run(
            argv,
            input=input_text,
            capture_output=True,
            text=True,
            cwd=cwd,
            env={**os.environ, **(env or {})},
        )
    except FileNotFoundError as e:
        return CmdResult(argv=argv, returncode=NOT_FOUND, stdout="", stderr=str(e))
    return CmdResult(argv=argv, returncode=proc.returncode, stdout=proc.stdout, stderr=proc.stderr)


def run_cmd(
    argv: Sequence[str],
    *,
    check: bool = True,
    env: Mapping[str, str] | None = None,
    cwd: str | None = None,
    input_text: str | None = None,
    dry_run: bool = False,
) -> CmdResult:
    """Run one command and return its captured output.

    The command line is logged at INFO and its output at DEBUG. With
    ``dry_run`` nothing is executed and an empty success is returned. A
    binary that is not installed counts as a failure with exit code 127,
    so ``check`` covers it the same way.
    """

    argv_list = [str(a) for a in argv]
    logger.info("CMD %s", fmt_argv(argv_list))

    if dry_run:
        return CmdResult(argv=argv_list, returncode=0, stdout="", stderr="")

    result = _execute(argv_list, env, cwd, input_text)
    for name, text in (("STDOUT", result.stdout), ("STDERR", result.stderr)):
        if text:
            logger.debug("%s %s", name, text.strip())

    if check and not result.ok:
        raise CommandError(result)
    return result

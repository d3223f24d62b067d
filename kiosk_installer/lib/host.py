from __future__ import annotations

import getpass
import logging
import os
import platform
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Mapping, Sequence

from .command import CmdResult, run_cmd

logger = logging.getLogger(__name__)

Runner = Callable[..., CmdResult]


@dataclass(frozen=True)
class Host:
    """The machine being provisioned, as seen by an unprivileged operator.

    Every mutation goes through ``sudo``; reads and probes run as the
    invoking user. ``runner`` is swappable so tests can record commands.
    """

    runner: Runner = run_cmd
    dry_run: bool = False

    def run(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        cwd: str | None = None,
        input_text: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> CmdResult:
        return self.runner(
            list(argv),
            check=check,
            cwd=cwd,
            input_text=input_text,
            env=env,
            dry_run=self.dry_run,
        )

    def sudo(self, argv: Sequence[str], **kwargs) -> CmdResult:
        return self.run(["sudo", *argv], **kwargs)

    def as_user(self, user: str, argv: Sequence[str], *, cwd: str | None = None, check: bool = True) -> CmdResult:
        """Run argv as ``user`` (with that user's HOME), never as root."""
        return self.run(["sudo", "-u", user, "-H", *argv], cwd=cwd, check=check)

    def write_file(
        self,
        path: str,
        contents: str,
        *,
        mode: str | None = None,
        owner: str | None = None,
    ) -> None:
        """Write a root-owned file in full (no merging)."""
        parent = posixpath.dirname(path)
        if parent:
            self.sudo(["mkdir", "-p", parent])
        self.sudo(["tee", path], input_text=contents)
        if mode:
            self.sudo(["chmod", mode, path])
        if owner:
            self.sudo(["chown", owner, path])
        logger.debug("Wrote %s (%d bytes)", path, len(contents))

    def exists(self, path: str) -> bool:
        return Path(path).exists()

    def is_file(self, path: str) -> bool:
        return Path(path).is_file()

    def is_dir(self, path: str) -> bool:
        return Path(path).is_dir()

    def euid(self) -> int:
        return os.geteuid()

    def machine(self) -> str:
        return platform.machine()

    def username(self) -> str:
        try:
            return getpass.getuser()
        except (KeyError, OSError):
            # No passwd entry (containers); chown accepts a numeric uid.
            return str(os.getuid())

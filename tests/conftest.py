"""Shared fixtures: a recording command runner and a config rooted in tmp_path.

No test here touches the real system; every command goes through
FakeRunner, which only mirrors filesystem effects inside tmp_path.
"""

from __future__ import annotations

import os
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import pytest

from kiosk_installer.config import KioskConfig
from kiosk_installer.lib.command import CmdResult, CommandError
from kiosk_installer.lib.host import Host
from kiosk_installer.logging_utils import reset_logging
from kiosk_installer.pipeline import ProvisionCtx


@dataclass
class Call:
    argv: List[str]
    cwd: Optional[str]
    input_text: Optional[str]


@dataclass
class Rule:
    prefix: List[str]
    returncode: int
    stdout: str
    stderr: str
    effect: Optional[Callable[[List[str]], None]]


class FakeRunner:
    """Stands in for run_cmd: records argv and answers from prefix rules.

    Later rules win over earlier ones; unmatched commands succeed silently.
    """

    def __init__(self, root: Path):
        self.root = Path(root)
        self.calls: List[Call] = []
        self._rules: List[Rule] = []
        self.on("sudo", "mkdir", "-p", effect=self._mkdir)
        self.on("sudo", "mv", effect=self._mv)
        self.on("sudo", "rm", "-rf", effect=self._rm)

    # --- configuration -------------------------------------------------

    def on(
        self,
        *prefix: str,
        returncode: int = 0,
        stdout: str = "",
        stderr: str = "",
        effect: Optional[Callable[[List[str]], None]] = None,
    ) -> "FakeRunner":
        self._rules.append(Rule(list(prefix), returncode, stdout, stderr, effect))
        return self

    def fail(self, *prefix: str, stderr: str = "boom") -> "FakeRunner":
        return self.on(*prefix, returncode=1, stderr=stderr)

    # --- runner protocol -------------------------------------------------

    def __call__(
        self,
        argv: Sequence[str],
        *,
        check: bool = True,
        cwd: Optional[str] = None,
        input_text: Optional[str] = None,
        env=None,
        dry_run: bool = False,
    ) -> CmdResult:
        argv = list(argv)
        self.calls.append(Call(argv=argv, cwd=cwd, input_text=input_text))

        returncode, stdout, stderr = 0, "", ""
        for rule in reversed(self._rules):
            if argv[: len(rule.prefix)] == rule.prefix:
                returncode, stdout, stderr = rule.returncode, rule.stdout, rule.stderr
                if rule.effect is not None and returncode == 0:
                    rule.effect(argv)
                break

        result = CmdResult(argv=argv, returncode=returncode, stdout=stdout, stderr=stderr)
        if check and returncode != 0:
            raise CommandError(result)
        return result

    # --- inspection ------------------------------------------------------

    @property
    def argvs(self) -> List[List[str]]:
        return [c.argv for c in self.calls]

    def ran(self, *prefix: str) -> bool:
        return self.index(*prefix) is not None

    def index(self, *prefix: str) -> Optional[int]:
        for i, argv in enumerate(self.argvs):
            if argv[: len(prefix)] == list(prefix):
                return i
        return None

    def find(self, *prefix: str) -> List[Call]:
        return [c for c in self.calls if c.argv[: len(prefix)] == list(prefix)]

    def written(self, path: str) -> Optional[str]:
        """Contents last piped through ``sudo tee <path>``."""
        calls = self.find("sudo", "tee", path)
        return calls[-1].input_text if calls else None

    # --- filesystem effects, confined to the test root ----------------

    def _inside(self, path: str) -> bool:
        return os.path.abspath(path).startswith(str(self.root))

    def _mkdir(self, argv: List[str]) -> None:
        if self._inside(argv[-1]):
            Path(argv[-1]).mkdir(parents=True, exist_ok=True)

    def _mv(self, argv: List[str]) -> None:
        src, dst = argv[-2], argv[-1]
        if self._inside(src) and self._inside(dst):
            os.rename(src, dst)

    def _rm(self, argv: List[str]) -> None:
        path = argv[-1]
        if self._inside(path) and os.path.isdir(path):
            shutil.rmtree(path)


def make_dist(project_dir: str) -> None:
    dist = Path(project_dir) / "dist"
    dist.mkdir(parents=True, exist_ok=True)
    (dist / "index.html").write_text("<html>menu</html>\n", encoding="utf-8")


@pytest.fixture(autouse=True)
def _clean_logging():
    reset_logging()
    yield
    reset_logging()


@pytest.fixture
def cfg(tmp_path: Path) -> KioskConfig:
    return KioskConfig(
        project_root=str(tmp_path / "opt"),
        dist_archive=str(tmp_path / "dist.tar"),
        temp_repo_dir=str(tmp_path / "menu-repo"),
        log_path=str(tmp_path / "menu-install.log"),
        launcher_python="/usr/bin/python3",
    )


@pytest.fixture
def runner(tmp_path: Path) -> FakeRunner:
    return FakeRunner(tmp_path)


@pytest.fixture
def ctx(cfg: KioskConfig, runner: FakeRunner) -> ProvisionCtx:
    return ProvisionCtx(cfg=cfg, host=Host(runner=runner))


@pytest.fixture
def healthy_host(cfg: KioskConfig, runner: FakeRunner, monkeypatch) -> FakeRunner:
    """A non-root operator on a Pi where every command behaves."""

    monkeypatch.setattr("kiosk_installer.lib.host.os.geteuid", lambda: 1000)
    runner.on("node", "--version", stdout="v20.11.1\n")
    runner.on("npm", "--version", stdout="10.2.4\n")
    runner.on("hostname", "-I", stdout="192.168.1.50 fe80::1\n")
    runner.on("sudo", "git", "clone", cfg.repo_url, cfg.project_dir, effect=lambda argv: Path(argv[-1]).mkdir(parents=True, exist_ok=True))
    runner.on(
        "sudo", "-u", cfg.service_user, "-H", "npm", "run", "build",
        effect=lambda argv: make_dist(cfg.project_dir),
    )
    return runner

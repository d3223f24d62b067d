from __future__ import annotations

import logging
import re

from kiosk_installer.lib.host import Host
from kiosk_installer.logging_utils import (
    SUCCESS,
    QuietFileHandler,
    configure_logging,
    log_success,
    prepare_log_file,
)

LINE_RE = re.compile(r"^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] (INFO|SUCCESS|WARNING|ERROR): ")


def test_success_level_is_named():
    assert SUCCESS == 25
    assert logging.getLevelName(SUCCESS) == "SUCCESS"


def test_writable_file_gets_every_line(tmp_path, capsys):
    log_file = tmp_path / "install.log"
    log_file.write_text("", encoding="utf-8")

    assert configure_logging(str(log_file)) == str(log_file)
    log = logging.getLogger("kiosk_installer.test")
    log.info("Installing packages")
    log_success(log, "Packages installed")
    log.warning("Please reboot")
    log.error("Build failed")

    lines = log_file.read_text(encoding="utf-8").splitlines()
    assert [LINE_RE.match(ln).group(1) for ln in lines] == ["INFO", "SUCCESS", "WARNING", "ERROR"]
    assert lines[1].endswith("SUCCESS: Packages installed")
    assert "Please reboot" in capsys.readouterr().out


def test_unwritable_log_means_console_only(tmp_path, capsys):
    missing = tmp_path / "nope" / "install.log"

    assert configure_logging(str(missing)) is None
    logging.getLogger("kiosk_installer.test").info("still visible")

    out = capsys.readouterr().out
    assert "console only" in out
    assert "still visible" in out
    assert not missing.exists()


def test_configure_is_idempotent(tmp_path):
    log_file = tmp_path / "install.log"
    log_file.write_text("", encoding="utf-8")
    root = logging.getLogger()
    before = len(root.handlers)

    configure_logging(str(log_file))
    configure_logging(str(log_file))

    assert len(root.handlers) == before + 2


def test_quiet_handler_swallows_write_errors(tmp_path):
    handler = QuietFileHandler(str(tmp_path / "x.log"), encoding="utf-8")
    handler.close()

    class Broken:
        def write(self, _):
            raise OSError("disk full")

        def flush(self):
            pass

    handler.stream = Broken()
    record = logging.LogRecord("t", logging.INFO, __file__, 1, "msg", None, None)
    handler.emit(record)


def test_prepare_log_file_hands_file_to_operator(tmp_path, runner, monkeypatch):
    log_file = tmp_path / "install.log"
    runner.on("sudo", "-n", "touch", effect=lambda argv: log_file.touch())
    host = Host(runner=runner)
    monkeypatch.setattr(host.__class__, "username", lambda self: "pi")

    assert prepare_log_file(str(log_file), host) is True
    assert runner.argvs == [
        ["sudo", "-n", "touch", str(log_file)],
        ["sudo", "-n", "chown", "pi", str(log_file)],
        ["sudo", "-n", "chmod", "644", str(log_file)],
    ]


def test_prepare_log_file_stops_when_sudo_needs_password(tmp_path, runner):
    runner.fail("sudo", "-n", "touch", stderr="a password is required")

    assert prepare_log_file(str(tmp_path / "install.log"), Host(runner=runner)) is False
    assert len(runner.calls) == 1


def test_default_is_console_only():
    assert configure_logging() is None
    root = logging.getLogger()
    assert not any(isinstance(h, logging.FileHandler) for h in getattr(root, "_kiosk_handlers"))

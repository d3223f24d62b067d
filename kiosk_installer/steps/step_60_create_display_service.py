from __future__ import annotations

import logging
import sys
from typing import Any, Dict

from ..errors import ConfigValidationError
from ..lib import systemd
from ..logging_utils import log_success
from ..pipeline import ProvisionCtx
from ..templates import render_launcher_script, render_systemd_unit

logger = logging.getLogger(__name__)


def _check_launcher_python(ctx: ProvisionCtx, python: str) -> None:
    """The service user must be able to exec the interpreter and import the launcher."""

    cfg = ctx.cfg
    r = ctx.host.as_user(cfg.service_user, [python, "-c", "import kiosk_installer.display"], check=False)
    if not r.ok:
        raise ConfigValidationError(
            f"{cfg.service_user} cannot run {python} -m kiosk_installer.display: {r.stderr.strip() or r.returncode}. "
            "Install kiosk-installer system-wide (e.g. sudo pip install --break-system-packages .) "
            "or set launcher_python to an interpreter the service user can read."
        )


class CreateDisplayServiceStep:
    step_id = "60_create_display_service"
    title = "kiosk display service"

    def run(self, ctx: ProvisionCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        host = ctx.host
        cfg = ctx.cfg

        logger.info("Creating systemd service %s...", cfg.unit_name)
        host.write_file(cfg.unit_path, render_systemd_unit(cfg))

        python = cfg.launcher_python or sys.executable
        host.write_file(
            cfg.launcher_path,
            render_launcher_script(cfg, python),
            mode="755",
            owner=cfg.owner,
        )
        logger.info("Launcher %s runs kiosk_installer.display with %s", cfg.launcher_path, python)
        _check_launcher_python(ctx, python)

        systemd.daemon_reload(host)
        systemd.enable(host, cfg.unit_name)

        log_success(logger, "Systemd service created and enabled")
        return state

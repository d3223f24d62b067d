from __future__ import annotations

import logging
import posixpath
from typing import Any, Dict

from ..lib import systemd
from ..logging_utils import log_success
from ..pipeline import ProvisionCtx
from ..templates import render_lightdm_conf, render_openbox_autostart

logger = logging.getLogger(__name__)


class ConfigureDisplayManagerStep:
    step_id = "70_configure_display_manager"
    title = "LightDM auto-login"

    def run(self, ctx: ProvisionCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        host = ctx.host
        cfg = ctx.cfg

        logger.info("Configuring display manager...")
        host.write_file(cfg.lightdm_conf_path, render_lightdm_conf(cfg))

        # Autostart stays empty: the systemd unit owns the browser, two starters would race.
        host.write_file(cfg.openbox_autostart_path, render_openbox_autostart(cfg))
        host.sudo(["chown", "-R", cfg.owner, posixpath.join(cfg.service_home, ".config")])

        systemd.enable(host, "lightdm")

        log_success(logger, "Display manager configured")
        return state

from __future__ import annotations

import logging
import posixpath
from typing import Any, Dict

from ..errors import ConfigValidationError
from ..lib import systemd
from ..logging_utils import log_success
from ..pipeline import ProvisionCtx
from ..templates import render_nginx_site

logger = logging.getLogger(__name__)


class ConfigureNginxStep:
    step_id = "50_configure_nginx"
    title = "nginx site"

    def run(self, ctx: ProvisionCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        host = ctx.host
        cfg = ctx.cfg

        logger.info("Configuring nginx web server...")
        host.write_file(cfg.site_available_path, render_nginx_site(cfg))

        host.sudo(["rm", "-f", posixpath.join(cfg.sites_enabled_dir, "default")])
        host.sudo(["ln", "-sf", cfg.site_available_path, cfg.sites_enabled_dir + "/"])

        self.validate(ctx)

        systemd.enable(host, "nginx")
        systemd.restart(host, "nginx")

        log_success(logger, "Nginx configured and started")
        return state

    def validate(self, ctx: ProvisionCtx) -> None:
        """Refuse to restart nginx on a config that would serve nothing or not load."""

        host = ctx.host
        cfg = ctx.cfg

        if not ctx.dry_run and not host.is_dir(cfg.dist_dir):
            raise ConfigValidationError(f"Document root {cfg.dist_dir} does not exist; not restarting nginx")

        r = host.sudo(["nginx", "-t"], check=False)
        if not r.ok:
            raise ConfigValidationError(f"nginx configuration test failed:\n{r.stderr.strip()}")

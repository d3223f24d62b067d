from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.pkg import apt_install, apt_update, apt_upgrade
from ..logging_utils import log_success
from ..pipeline import ProvisionCtx

logger = logging.getLogger(__name__)


class InstallPackagesStep:
    step_id = "10_install_packages"
    title = "system packages"

    def run(self, ctx: ProvisionCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        host = ctx.host
        packages = list(ctx.cfg.packages)

        logger.info("Updating package repositories...")
        apt_update(host)

        logger.info("Upgrading system packages...")
        apt_upgrade(host)

        logger.info("Installing required packages: %s", " ".join(packages))
        apt_install(host, packages)

        log_success(logger, "System packages installed")
        return state

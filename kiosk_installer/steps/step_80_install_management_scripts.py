from __future__ import annotations

import logging
from typing import Any, Dict

from ..logging_utils import log_success
from ..pipeline import ProvisionCtx
from ..state_store import decisions
from ..templates import render_diagnose_script, render_status_script, render_update_script

logger = logging.getLogger(__name__)


class InstallManagementScriptsStep:
    step_id = "80_install_management_scripts"
    title = "operator scripts"

    def run(self, ctx: ProvisionCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        host = ctx.host
        cfg = ctx.cfg

        logger.info("Creating management scripts...")
        scripts = {
            cfg.update_script_path: render_update_script(cfg),
            cfg.status_script_path: render_status_script(cfg),
            cfg.diagnose_script_path: render_diagnose_script(cfg),
        }
        for path, contents in scripts.items():
            host.write_file(path, contents, mode="755")

        decisions(state)["management_scripts"] = list(scripts)
        log_success(logger, "Management scripts created")
        return state

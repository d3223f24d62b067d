from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from ..errors import RuntimeVerificationError
from ..lib.host import Host
from ..lib.pkg import apt_autoremove, apt_install, apt_remove, apt_update
from ..logging_utils import log_success
from ..pipeline import ProvisionCtx
from ..state_store import decisions

logger = logging.getLogger(__name__)


def bootstrap_nodesource(host: Host, setup_url: str) -> bool:
    """Fetch the vendor setup script and pipe it into ``sudo -E bash -``."""

    fetch = host.run(["curl", "-fsSL", setup_url], check=False)
    if not fetch.ok:
        return False
    r = host.sudo(["-E", "bash", "-"], input_text=fetch.stdout, check=False)
    return r.ok


def tool_version(host: Host, tool: str) -> Optional[str]:
    r = host.run([tool, "--version"], check=False)
    version = r.stdout.strip()
    if not r.ok or not version:
        return None
    return version.splitlines()[0]


class InstallNodeStep:
    step_id = "20_install_nodejs"
    title = "Node.js runtime"

    def run(self, ctx: ProvisionCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        host = ctx.host
        cfg = ctx.cfg

        logger.info("Installing Node.js LTS...")
        arch = host.machine()
        logger.info("Detected architecture: %s", arch)

        # Distro builds lag far behind LTS; clear them so NodeSource wins.
        apt_remove(host, ["nodejs", "npm"])
        apt_autoremove(host)

        logger.info("Downloading and installing Node.js from NodeSource...")
        if bootstrap_nodesource(host, cfg.node_setup_url):
            source = "nodesource"
            apt_install(host, ["nodejs"])
        else:
            logger.error("Failed to setup NodeSource repository")
            logger.info("Falling back to default repository Node.js...")
            source = "distro"
            apt_update(host)
            apt_install(host, ["nodejs", "npm"])

        if ctx.dry_run:
            node_version = npm_version = "dry-run"
        else:
            node_version = tool_version(host, "node")
            if node_version is None:
                raise RuntimeVerificationError("Node.js installation failed - node command not found")
            npm_version = tool_version(host, "npm")
            if npm_version is None:
                raise RuntimeVerificationError("npm installation failed - npm command not found")

        log_success(logger, "Node.js %s and npm %s installed", node_version, npm_version)

        logger.info("Updating npm to latest version...")
        if not host.sudo(["npm", "install", "-g", "npm@latest"], check=False).ok:
            logger.warning("npm update failed, continuing with current version")

        d = decisions(state)
        d["arch"] = arch
        d["node_source"] = source
        d["node_version"] = node_version
        d["npm_version"] = npm_version
        return state

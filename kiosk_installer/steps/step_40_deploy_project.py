from __future__ import annotations

import logging
import posixpath
import time
from typing import Any, Callable, Dict, Optional

from ..errors import DeploymentError
from ..lib.command import CommandError
from ..lib.git import clone
from ..lib.host import Host
from ..logging_utils import log_success
from ..pipeline import ProvisionCtx
from ..state_store import decisions
from .step_20_install_nodejs import tool_version

logger = logging.getLogger(__name__)


def unique_backup_path(path: str, now: int, exists: Callable[[str], bool]) -> str:
    """``<path>.backup.<epoch>``, suffixed with ``.N`` until the name is free."""

    candidate = f"{path}.backup.{now}"
    n = 1
    while exists(candidate):
        candidate = f"{path}.backup.{now}.{n}"
        n += 1
    return candidate


def backup_existing(host: Host, path: str, now: int) -> Optional[str]:
    if not host.is_dir(path):
        return None
    dest = unique_backup_path(path, now, host.exists)
    logger.warning("Existing project directory found. Creating backup at %s", dest)
    host.sudo(["mv", path, dest])
    return dest


class DeployProjectStep:
    step_id = "40_deploy_project"
    title = "project deployment"

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock

    def run(self, ctx: ProvisionCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        host = ctx.host
        cfg = ctx.cfg
        d = decisions(state)

        logger.info("Deploying project to %s...", cfg.project_dir)

        d["backup_path"] = backup_existing(host, cfg.project_dir, int(self._clock()))
        host.sudo(["mkdir", "-p", cfg.project_dir])

        if host.is_file(cfg.dist_archive):
            d["deploy_branch"] = "archive"
            self._deploy_archive(ctx)
        else:
            d["deploy_branch"] = "source"
            self._build_from_source(ctx)

        host.sudo(["chown", "-R", cfg.owner, cfg.project_dir])

        if not ctx.dry_run and not host.is_dir(cfg.dist_dir):
            raise DeploymentError("No dist directory found after deployment")
        host.sudo(["chmod", "-R", "755", cfg.dist_dir])

        log_success(logger, "Project deployed successfully")
        return state

    def _deploy_archive(self, ctx: ProvisionCtx) -> None:
        host = ctx.host
        cfg = ctx.cfg

        logger.info("Found pre-built %s, extracting...", cfg.dist_archive)
        try:
            host.sudo(["tar", "-xf", cfg.dist_archive, "-C", cfg.project_dir])
        except CommandError as e:
            raise DeploymentError(f"Failed to extract {cfg.dist_archive}: {e}") from e

        if not ctx.dry_run and not host.is_file(cfg.marker_file):
            raise DeploymentError(
                f"{posixpath.basename(cfg.dist_archive)} extraction failed - no valid dist folder found "
                f"(expected {cfg.marker_file})"
            )
        log_success(logger, "Pre-built distribution extracted successfully")

        self._sync_config_files(ctx)
        logger.info("Pre-built deployment completed - no build required")

    def _sync_config_files(self, ctx: ProvisionCtx) -> None:
        """Copy config files from a throwaway clone so they track source control."""

        host = ctx.host
        cfg = ctx.cfg
        temp = cfg.temp_repo_dir

        logger.info("Cloning repository for configuration files...")
        host.sudo(["rm", "-rf", temp])
        try:
            try:
                clone(host, cfg.repo_url, temp)
            except CommandError as e:
                raise DeploymentError(f"Failed to clone {cfg.repo_url}: {e}") from e

            for name in cfg.synced_config_files:
                src = posixpath.join(temp, name)
                if host.is_file(src):
                    host.sudo(["cp", src, cfg.project_dir + "/"])
                    logger.info("Copied %s", name)
        finally:
            host.sudo(["rm", "-rf", temp], check=False)

    def _build_from_source(self, ctx: ProvisionCtx) -> None:
        host = ctx.host
        cfg = ctx.cfg
        user = cfg.service_user

        logger.warning("No pre-built archive found at %s", cfg.dist_archive)
        logger.info("Falling back to building from source...")

        try:
            clone(host, cfg.repo_url, cfg.project_dir)
        except CommandError as e:
            raise DeploymentError(f"Failed to clone {cfg.repo_url}: {e}") from e

        logger.info("System architecture: %s", host.machine())
        logger.info("Node.js version: %s", tool_version(host, "node") or "unknown")
        logger.info("npm version: %s", tool_version(host, "npm") or "unknown")

        # The build writes node_modules/ and dist/ as the service user.
        host.sudo(["chown", "-R", cfg.owner, cfg.project_dir])

        remedy = f"Please provide a pre-built dist.tar at {cfg.dist_archive} or fix the build on this device."

        logger.info("Installing dependencies...")
        try:
            host.as_user(user, ["npm", "install"], cwd=cfg.project_dir)
        except CommandError as e:
            raise DeploymentError(f"Dependency install failed. {remedy}") from e

        logger.info("Building application...")
        try:
            host.as_user(user, ["npm", "run", "build"], cwd=cfg.project_dir)
        except CommandError as e:
            raise DeploymentError(f"Build from source failed. {remedy}") from e
        log_success(logger, "Source build completed successfully")

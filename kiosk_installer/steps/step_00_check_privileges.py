from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import PrivilegeError
from ..pipeline import ProvisionCtx

logger = logging.getLogger(__name__)


class CheckPrivilegesStep:
    step_id = "00_check_privileges"
    title = "privilege check"

    def run(self, ctx: ProvisionCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        host = ctx.host

        if host.euid() == 0:
            raise PrivilegeError(
                "This installer must not be run as root. Run it as a regular user with sudo access."
            )

        if ctx.dry_run:
            logger.info("Dry run: skipping passwordless sudo probe")
            return state

        r = host.run(["sudo", "-n", "true"], check=False)
        if not r.ok:
            raise PrivilegeError("User must have passwordless sudo access. Run: sudo visudo")

        logger.info("Running as %s with passwordless sudo", host.username())
        return state

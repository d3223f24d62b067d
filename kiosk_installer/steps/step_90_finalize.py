from __future__ import annotations

import logging
import sys
from typing import Any, Dict, Optional, TextIO

from ..lib.host import Host
from ..logging_utils import log_success
from ..pipeline import ProvisionCtx
from ..state_store import decisions
from ..summary import render_summary

logger = logging.getLogger(__name__)


def primary_ip(host: Host) -> Optional[str]:
    """First address from ``hostname -I`` (best-effort)."""
    r = host.run(["hostname", "-I"], check=False)
    parts = r.stdout.split() if r.ok else []
    return parts[0] if parts else None


class FinalizeStep:
    step_id = "90_finalize"
    title = "summary"

    def __init__(self, out: Optional[TextIO] = None):
        self._out = out

    def run(self, ctx: ProvisionCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        log_success(logger, "Installation completed successfully!")

        ip = primary_ip(ctx.host)
        out = self._out or sys.stdout
        out.write(render_summary(ctx.cfg, ip, decisions(state)))
        out.flush()

        decisions(state)["ip"] = ip
        logger.warning("Please reboot the system to start the digital menu display")
        return state

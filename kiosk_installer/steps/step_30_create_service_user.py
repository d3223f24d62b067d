from __future__ import annotations

import logging
from typing import Any, Dict

from ..lib.users import add_to_groups, create_system_user, user_exists
from ..logging_utils import log_success
from ..pipeline import ProvisionCtx
from ..state_store import decisions

logger = logging.getLogger(__name__)


class CreateServiceUserStep:
    step_id = "30_create_service_user"
    title = "service user"

    def run(self, ctx: ProvisionCtx, state: Dict[str, Any]) -> Dict[str, Any]:
        host = ctx.host
        cfg = ctx.cfg
        user = cfg.service_user

        logger.info("Creating service user '%s'...", user)

        created = False
        if user_exists(host, user):
            logger.warning("User '%s' already exists", user)
        else:
            create_system_user(host, user, home=cfg.service_home, comment=cfg.service_comment)
            created = True

        # Re-applied on every run so group membership converges.
        add_to_groups(host, user, cfg.service_groups)

        if created:
            log_success(logger, "Service user '%s' created", user)

        decisions(state)["service_user"] = {"name": user, "created": created, "groups": list(cfg.service_groups)}
        return state

from __future__ import annotations

import logging
from typing import Sequence

from .host import Host

logger = logging.getLogger(__name__)


def user_exists(host: Host, username: str) -> bool:
    r = host.run(["id", username], check=False)
    return r.ok


def create_system_user(host: Host, username: str, *, home: str, shell: str = "/bin/bash", comment: str = "") -> None:
    """Create a system user with a same-named group and a dedicated home."""
    argv = ["adduser", "--system", "--group", "--home", home, "--shell", shell]
    if comment:
        argv += ["--comment", comment]
    host.sudo([*argv, username])


def add_to_groups(host: Host, username: str, groups: Sequence[str]) -> None:
    if not groups:
        return
    host.sudo(["usermod", "-a", "-G", ",".join(groups), username])

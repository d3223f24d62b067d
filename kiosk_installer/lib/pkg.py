from __future__ import annotations

import logging
from typing import Sequence

from .host import Host

logger = logging.getLogger(__name__)

_NONINTERACTIVE = "DEBIAN_FRONTEND=noninteractive"


def apt_update(host: Host) -> None:
    host.sudo(["apt-get", "update", "-qq"])


def apt_upgrade(host: Host) -> None:
    host.sudo([_NONINTERACTIVE, "apt-get", "upgrade", "-y", "-qq"])


def apt_install(host: Host, packages: Sequence[str]) -> None:
    if not packages:
        return
    host.sudo([_NONINTERACTIVE, "apt-get", "install", "-y", "-qq", *packages])


def apt_remove(host: Host, packages: Sequence[str]) -> bool:
    """Best-effort removal. Returns False if apt refused (e.g. nothing installed)."""
    if not packages:
        return True
    r = host.sudo(["apt-get", "remove", "-y", "-qq", *packages], check=False)
    return r.ok


def apt_autoremove(host: Host) -> bool:
    r = host.sudo(["apt-get", "autoremove", "-y", "-qq"], check=False)
    return r.ok

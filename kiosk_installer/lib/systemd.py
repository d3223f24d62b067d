from __future__ import annotations

from .host import Host


def daemon_reload(host: Host) -> None:
    host.sudo(["systemctl", "daemon-reload"])


def enable(host: Host, unit: str) -> None:
    host.sudo(["systemctl", "enable", unit])


def restart(host: Host, unit: str) -> None:
    host.sudo(["systemctl", "restart", unit])

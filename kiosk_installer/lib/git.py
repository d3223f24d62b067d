from __future__ import annotations

from .host import Host


def clone(host: Host, repo_url: str, dest: str) -> None:
    host.sudo(["git", "clone", repo_url, dest])

from __future__ import annotations

from typing import Any, Dict, Optional

from .config import KioskConfig


def render_summary(cfg: KioskConfig, ip: Optional[str], decisions: Optional[Dict[str, Any]] = None) -> str:
    """Operator-facing wrap-up printed after a successful run."""

    d = decisions or {}
    ip = ip or "<pi-ip>"
    unit = cfg.service_name

    deploy = "Project deployed to " + cfg.project_dir
    if d.get("deploy_branch") == "archive":
        deploy += f" (pre-built {cfg.dist_archive})"
    elif d.get("deploy_branch") == "source":
        deploy += " (built from source)"

    node = "Node.js and npm installed"
    if d.get("node_version"):
        node = f"Node.js {d['node_version']} and npm {d.get('npm_version', '?')} installed"

    lines = [
        "",
        "Installation Summary",
        "====================",
        "  [ok] System packages installed",
        f"  [ok] {node}",
        f"  [ok] Service user '{cfg.service_user}' ready",
        f"  [ok] {deploy}",
        "  [ok] Nginx web server configured",
        f"  [ok] Systemd service '{unit}' created",
        "  [ok] Display manager configured for auto-login",
        "  [ok] Management scripts installed",
    ]
    if d.get("backup_path"):
        lines.append(f"  Previous deployment kept at {d['backup_path']}")
    lines += [
        "",
        "Next Steps:",
        "  1. Reboot the system: sudo reboot",
        "  2. The menu will automatically start in kiosk mode",
        f"  3. Update the menu: {cfg.script_prefix}-update",
        f"  4. Check status: {cfg.script_prefix}-status",
        f"  5. Troubleshoot: {cfg.script_prefix}-diagnose",
        "",
        "The menu will be available at:",
        "  - http://localhost/ (on the Pi)",
        f"  - http://{ip}/ (on your network)",
        "",
        "Service Management:",
        f"  - Start: sudo systemctl start {unit}",
        f"  - Stop: sudo systemctl stop {unit}",
        f"  - Status: sudo systemctl status {unit}",
        f"  - Logs: journalctl -u {unit} -f",
        "",
    ]
    return "\n".join(lines)

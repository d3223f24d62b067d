"""Pure renderers for every file the installer writes.

Nothing here touches the host; each function takes the config and returns
the full file contents, so the output can be compared in tests.
"""

from __future__ import annotations

import shlex

from .config import KioskConfig

STATIC_ASSET_EXTENSIONS = ("png", "jpg", "jpeg", "gif", "ico", "svg", "css", "js")


def _docs_url(repo_url: str) -> str:
    return repo_url[: -len(".git")] if repo_url.endswith(".git") else repo_url


def render_nginx_site(cfg: KioskConfig) -> str:
    exts = "|".join(STATIC_ASSET_EXTENSIONS)
    return f"""server {{
    listen 80 default_server;
    listen [::]:80 default_server;

    root {cfg.dist_dir};
    index index.html;

    server_name _;

    # Security headers
    add_header X-Frame-Options DENY;
    add_header X-Content-Type-Options nosniff;
    add_header X-XSS-Protection "1; mode=block";

    # Page navigations are never cached so menu edits show up on reload.
    location / {{
        try_files $uri $uri/ =404;
        add_header Cache-Control "no-cache, no-store, must-revalidate";
        add_header Pragma "no-cache";
        add_header Expires "0";
    }}

    location ~* \\.({exts})$ {{
        expires 1d;
        add_header Cache-Control "public, immutable";
    }}

    location /health {{
        access_log off;
        default_type text/plain;
        return 200 "OK\\n";
    }}
}}
"""


def render_systemd_unit(cfg: KioskConfig) -> str:
    return "\n".join(
        [
            "[Unit]",
            f"Description={cfg.display_title} Display",
            f"Documentation={_docs_url(cfg.repo_url)}",
            "After=graphical-session.target network.target nginx.service",
            "Wants=graphical-session.target",
            "Requires=nginx.service",
            "",
            "[Service]",
            "Type=simple",
            f"User={cfg.service_user}",
            f"Group={cfg.service_user}",
            f"Environment=DISPLAY={cfg.display}",
            f"Environment=HOME={cfg.service_home}",
            f"WorkingDirectory={cfg.project_dir}",
            f"ExecStartPre=/bin/sleep {cfg.start_delay}",
            f"ExecStart={cfg.launcher_path}",
            "Restart=always",
            "RestartSec=10",
            "KillMode=mixed",
            "KillSignal=SIGTERM",
            "TimeoutStopSec=30",
            "",
            "# Security settings",
            "NoNewPrivileges=true",
            "PrivateTmp=true",
            "ProtectSystem=strict",
            f"ReadWritePaths={cfg.project_dir} {cfg.service_home} /tmp",
            "",
            "# Logging",
            "StandardOutput=journal",
            "StandardError=journal",
            f"SyslogIdentifier={cfg.service_name}",
            "",
            "[Install]",
            "WantedBy=graphical.target",
            "",
        ]
    )


def render_launcher_script(cfg: KioskConfig, python: str) -> str:
    argv = [
        python,
        "-m",
        "kiosk_installer.display",
        "--display",
        cfg.display,
        "--url",
        cfg.kiosk_url,
        "--browser",
        cfg.browser,
        "--rotate",
        cfg.rotation,
    ]
    for output in cfg.outputs:
        argv += ["--output", output]
    argv += [
        "--attempts",
        str(cfg.display_wait_attempts),
        "--interval",
        str(cfg.display_wait_interval),
    ]
    return "\n".join(
        [
            "#!/bin/sh",
            f"# Started by {cfg.unit_name}; exec keeps systemd attached to the browser.",
            "exec " + " ".join(shlex.quote(a) for a in argv),
            "",
        ]
    )


def render_lightdm_conf(cfg: KioskConfig) -> str:
    return "\n".join(
        [
            "[Seat:*]",
            "autologin-guest=false",
            f"autologin-user={cfg.service_user}",
            "autologin-user-timeout=0",
            f"user-session={cfg.window_session}",
            "xserver-command=X -s 0 -dpms",
            "",
        ]
    )


def render_openbox_autostart(cfg: KioskConfig) -> str:
    return "\n".join(
        [
            "# Menu display auto-start configuration",
            f"# {cfg.unit_name} starts the browser; nothing to launch here.",
            "",
        ]
    )


def render_update_script(cfg: KioskConfig) -> str:
    user = cfg.service_user
    return f"""#!/bin/bash
set -euo pipefail

echo "Updating {cfg.display_title}..."

cd {shlex.quote(cfg.project_dir)}

sudo systemctl stop {cfg.unit_name}

sudo -u {user} git pull origin {cfg.repo_branch}

sudo -u {user} npm ci --omit=dev
sudo -u {user} npm run build

sudo systemctl restart nginx
sudo systemctl start {cfg.unit_name}

echo "Menu updated successfully!"
"""


def render_status_script(cfg: KioskConfig) -> str:
    project = shlex.quote(cfg.project_dir)
    marker = shlex.quote(cfg.marker_file)
    title = f"{cfg.display_title} - System Status"
    return f"""#!/bin/bash

echo "{title}"
echo "{'=' * len(title)}"
echo ""

IP="$(hostname -I 2>/dev/null | awk '{{print $1}}')"

echo "System Information:"
echo "  Hostname: $(hostname)"
echo "  IP Address: ${{IP:-unknown}}"
echo "  Uptime: $(uptime -p)"
echo ""

echo "Display Service:"
sudo systemctl status {cfg.unit_name} --no-pager -l
echo ""

echo "Web Server:"
sudo systemctl status nginx --no-pager -l
echo ""

echo "Access URLs:"
echo "  Local: http://localhost/"
echo "  Network: http://${{IP:-<pi-ip>}}/"
echo "  Health: http://localhost/health"
echo ""

echo "Project Information:"
echo "  Location: {cfg.project_dir}"
echo "  Last Build: $(stat -c %y {marker} 2>/dev/null || echo 'Not built')"
echo "  Git Branch: $(cd {project} && git branch --show-current 2>/dev/null || echo 'Unknown')"
echo "  Git Commit: $(cd {project} && git rev-parse --short HEAD 2>/dev/null || echo 'Unknown')"
"""


def render_diagnose_script(cfg: KioskConfig) -> str:
    title = f"{cfg.display_title} - Diagnostics"
    unit = cfg.service_name
    return f"""#!/bin/bash
# Read-only checks for a kiosk that is not showing the menu.

echo "{title}"
echo "{'=' * len(title)}"

echo
echo "1. LightDM status..."
systemctl status lightdm --no-pager

echo
echo "2. {unit} service status..."
systemctl status {unit} --no-pager

echo
echo "3. Service user {cfg.service_user}..."
id {cfg.service_user}

echo
echo "4. X server processes..."
pgrep -a -f -i xorg || echo "No X server running"

echo
echo "5. LightDM autologin configuration..."
grep -E "(autologin|user-session)" {cfg.lightdm_conf_path}

echo
echo "6. nginx responses..."
echo "  /       -> $(curl -s -o /dev/null -w '%{{http_code}}' http://localhost/ || echo 'connection failed')"
echo "  /health -> $(curl -s -o /dev/null -w '%{{http_code}}' http://localhost/health || echo 'connection failed')"

echo
echo "7. Build output..."
ls -la {shlex.quote(cfg.dist_dir)}/ | head -5

echo
echo "8. Recent {unit} logs..."
journalctl -u {unit} --no-pager -n 20

echo
echo "9. Recent lightdm logs..."
journalctl -u lightdm --no-pager -n 10

echo
echo "To restart the display: sudo systemctl restart {unit}"
echo "To follow its logs:     journalctl -u {unit} -f"
"""

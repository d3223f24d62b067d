from __future__ import annotations

import dataclasses
import posixpath
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Tuple

DEFAULT_PACKAGES: Tuple[str, ...] = (
    "git",
    "curl",
    "wget",
    "unzip",
    "chromium-browser",
    "nginx",
    "xorg",
    "openbox",
    "lightdm",
    "x11-xserver-utils",
    "xinit",
    "unclutter",
    "ca-certificates",
    "gnupg",
    "lsb-release",
)

# Copied next to a pre-built bundle so the deployed tree matches source control.
DEFAULT_SYNCED_CONFIG_FILES: Tuple[str, ...] = (
    "package.json",
    "astro.config.ts",
    "astro.config.js",
    "astro.config.mjs",
)


@dataclass(frozen=True)
class KioskConfig:
    project_name: str = "manheim-lions-menu"
    display_title: str = "Manheim Lions Digital Menu"
    project_root: str = "/opt"
    service_user: str = "menudisplay"
    service_comment: str = "Menu Display Service"
    service_groups: Tuple[str, ...] = ("video", "audio")
    repo_url: str = "https://github.com/alexsguardian/manheim-lions-digimenu.git"
    repo_branch: str = "main"
    log_path: str = "/opt/menu-install.log"
    dist_archive: str = "/opt/dist.tar"
    temp_repo_dir: str = "/tmp/menu-repo"
    site_name: str = "menu-display"
    service_name: str = "menu-display"
    bin_dir: str = "/usr/local/bin"
    script_prefix: str = "menu"
    node_setup_url: str = "https://deb.nodesource.com/setup_lts.x"
    packages: Tuple[str, ...] = DEFAULT_PACKAGES
    synced_config_files: Tuple[str, ...] = DEFAULT_SYNCED_CONFIG_FILES

    # Kiosk display
    browser: str = "chromium-browser"
    display: str = ":0"
    kiosk_url: str = "http://localhost/"
    rotation: str = "left"
    outputs: Tuple[str, ...] = ("HDMI-1", "HDMI-A-1")
    display_wait_attempts: int = 30
    display_wait_interval: float = 2.0
    start_delay: int = 10
    window_session: str = "openbox"
    # Interpreter the launcher execs; empty means the one running the installer.
    launcher_python: str = ""

    @property
    def project_dir(self) -> str:
        return posixpath.join(self.project_root, self.project_name)

    @property
    def dist_dir(self) -> str:
        return posixpath.join(self.project_dir, "dist")

    @property
    def marker_file(self) -> str:
        return posixpath.join(self.dist_dir, "index.html")

    @property
    def service_home(self) -> str:
        return f"/var/lib/{self.service_user}"

    @property
    def scripts_dir(self) -> str:
        return posixpath.join(self.project_dir, "scripts")

    @property
    def launcher_path(self) -> str:
        return posixpath.join(self.scripts_dir, f"{self.service_name}.sh")

    @property
    def unit_name(self) -> str:
        return f"{self.service_name}.service"

    @property
    def unit_path(self) -> str:
        return f"/etc/systemd/system/{self.unit_name}"

    @property
    def site_available_path(self) -> str:
        return f"/etc/nginx/sites-available/{self.site_name}"

    @property
    def sites_enabled_dir(self) -> str:
        return "/etc/nginx/sites-enabled"

    @property
    def lightdm_conf_path(self) -> str:
        return "/etc/lightdm/lightdm.conf"

    @property
    def openbox_autostart_path(self) -> str:
        return posixpath.join(self.service_home, ".config", "openbox", "autostart")

    @property
    def update_script_path(self) -> str:
        return posixpath.join(self.bin_dir, f"{self.script_prefix}-update")

    @property
    def status_script_path(self) -> str:
        return posixpath.join(self.bin_dir, f"{self.script_prefix}-status")

    @property
    def diagnose_script_path(self) -> str:
        return posixpath.join(self.bin_dir, f"{self.script_prefix}-diagnose")

    @property
    def owner(self) -> str:
        return f"{self.service_user}:{self.service_user}"

    def as_dict(self) -> Dict[str, Any]:
        data = dataclasses.asdict(self)
        for k, v in list(data.items()):
            if isinstance(v, tuple):
                data[k] = list(v)
        return data


_FIELDS = {f.name: f for f in dataclasses.fields(KioskConfig)}


def with_overrides(cfg: KioskConfig, **overrides: Any) -> KioskConfig:
    """Return a copy of cfg with overrides applied (lists and scalars become tuples)."""

    unknown = sorted(set(overrides) - set(_FIELDS))
    if unknown:
        raise ValueError(f"Unknown config keys: {', '.join(unknown)}")

    clean: Dict[str, Any] = {}
    for k, v in overrides.items():
        default = getattr(cfg, k)
        if isinstance(default, tuple):
            # `outputs: HDMI-1` means a one-element list.
            items = v if isinstance(v, (list, tuple)) else [v]
            v = tuple(str(x) for x in items)
        elif isinstance(default, bool):
            v = bool(v)
        elif isinstance(default, int) and not isinstance(default, bool):
            v = int(v)
        elif isinstance(default, float):
            v = float(v)
        clean[k] = v
    return dataclasses.replace(cfg, **clean)


def load_config(path: str | None) -> KioskConfig:
    """Load a YAML file of overrides on top of the defaults.

    A missing path (None) yields the defaults unchanged.
    """

    cfg = KioskConfig()
    if path is None:
        return cfg

    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(path)

    if p.suffix.lower() not in {".yaml", ".yml"}:
        raise ValueError("kiosk config must be YAML")

    try:
        import yaml  # type: ignore
    except Exception as e:  # pragma: no cover
        raise RuntimeError("PyYAML is required to read the kiosk config") from e

    raw = yaml.safe_load(p.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"{path} must contain a mapping/object")

    return with_overrides(cfg, **raw)

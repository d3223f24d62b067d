"""Kiosk launcher started by the systemd display unit.

Runs on the provisioned Pi as the service user, in three phases:

1. wait until the X server on the target display answers ``xset q``
   (bounded retry budget; timing out exits 1 so systemd restarts us),
2. rotate the screen, disable blanking/DPMS and hide the cursor,
3. kill any stale browser and exec-replace this process with the browser
   in kiosk mode, so systemd supervises the browser directly.

SIGTERM/SIGINT kill the browser tree and exit 0.
"""

from __future__ import annotations

import argparse
import logging
import os
import signal
import subprocess
import sys
import time
from typing import Callable, List, Optional, Sequence

from .lib.command import run_cmd

logger = logging.getLogger(__name__)

KIOSK_FLAGS: tuple[str, ...] = (
    "--kiosk",
    "--no-first-run",
    "--disable-infobars",
    "--disable-session-crashed-bubble",
    "--disable-translate",
    "--disable-features=TranslateUI",
    "--disable-background-timer-throttling",
    "--disable-backgrounding-occluded-windows",
    "--disable-renderer-backgrounding",
    "--disable-background-networking",
    "--disable-sync",
    "--disable-default-apps",
    "--disable-extensions",
    "--disable-plugins",
    "--disable-java",
    "--disable-notifications",
    "--no-default-browser-check",
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-software-rasterizer",
    "--start-fullscreen",
    "--window-position=0,0",
)


class DisplayTimeoutError(RuntimeError):
    pass


class DisplaySetupError(RuntimeError):
    pass


def x_ready(display: str) -> bool:
    r = run_cmd(["xset", "-display", display, "q"], check=False)
    return r.ok


def wait_for_display(
    display: str,
    *,
    attempts: int = 30,
    interval: float = 2.0,
    probe: Optional[Callable[[str], bool]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> int:
    """Poll the X server until it answers; return the attempt that succeeded."""

    probe = probe or x_ready
    logger.info("Waiting for X server on %s...", display)
    for attempt in range(1, attempts + 1):
        if probe(display):
            logger.info("X server is ready (attempt %d)", attempt)
            return attempt
        if attempt < attempts:
            sleep(interval)
    raise DisplayTimeoutError(f"X server on {display} failed to start within {attempts} attempts")


def rotate_screen(outputs: Sequence[str], rotation: str) -> Optional[str]:
    """Rotate the first output xrandr accepts; None if none matched."""

    for output in outputs:
        r = run_cmd(["xrandr", "--output", output, "--rotate", rotation], check=False)
        if r.ok:
            return output
    return None


def configure_display(display: str, *, outputs: Sequence[str], rotation: str) -> Optional[str]:
    logger.info("Configuring display settings...")
    os.environ["DISPLAY"] = display

    output = rotate_screen(outputs, rotation)
    if output is None:
        logger.warning("Could not set display rotation on %s (continuing anyway)", ", ".join(outputs))
    else:
        logger.info("Rotated %s (%s)", output, rotation)

    for argv in (["xset", "s", "off"], ["xset", "-dpms"], ["xset", "s", "noblank"]):
        r = run_cmd(argv, check=False)
        if not r.ok:
            raise DisplaySetupError(f"{' '.join(argv)} failed: {r.stderr.strip()}")

    hide_cursor()
    logger.info("Display configured")
    return output


def hide_cursor() -> None:
    """Start unclutter detached; it lives as long as the X session."""
    try:
        subprocess.Popen(
            ["unclutter", "-idle", "0.1", "-root"],
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        logger.warning("unclutter not started: %s", e)


def browser_pids(browser: str) -> List[int]:
    """PIDs whose command line mentions the browser, excluding this process.

    The launcher's own command line carries ``--browser <name>``, so a plain
    ``pkill -f`` would signal the launcher itself.
    """

    r = run_cmd(["pgrep", "-f", browser], check=False)
    own = os.getpid()
    return [int(tok) for tok in r.stdout.split() if tok.isdigit() and int(tok) != own]


def kill_browser(browser: str) -> None:
    for pid in browser_pids(browser):
        try:
            os.kill(pid, signal.SIGTERM)
        except ProcessLookupError:
            pass
        except PermissionError:
            logger.warning("Not allowed to stop pid %d (%s)", pid, browser)


def browser_argv(browser: str, url: str) -> List[str]:
    return [browser, *KIOSK_FLAGS, f"--app={url}"]


def launch_browser(
    browser: str,
    url: str,
    *,
    settle: float = 2.0,
    sleep: Callable[[float], None] = time.sleep,
    execvp: Callable[[str, List[str]], None] = os.execvp,
) -> None:
    """Replace this process with the browser; only returns if execvp is stubbed."""

    logger.info("Starting %s...", browser)
    kill_browser(browser)
    sleep(settle)

    argv = browser_argv(browser, url)
    logging.shutdown()
    execvp(argv[0], argv)


def install_signal_handlers(browser: str) -> None:
    def _shutdown(signum, frame):
        signal.signal(signal.SIGTERM, signal.SIG_IGN)
        signal.signal(signal.SIGINT, signal.SIG_IGN)
        logger.info("Received %s, shutting down...", signal.Signals(signum).name)
        kill_browser(browser)
        sys.exit(0)

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)


def main(argv: Optional[list[str]] = None) -> int:
    p = argparse.ArgumentParser(prog="kiosk-display", description="Start the kiosk browser on a local X display")
    p.add_argument("--display", default=":0")
    p.add_argument("--url", default="http://localhost/")
    p.add_argument("--browser", default="chromium-browser")
    p.add_argument("--rotate", default="left", help="xrandr rotation (normal|left|right|inverted)")
    p.add_argument("--output", action="append", dest="outputs", help="Output name to try (repeatable)")
    p.add_argument("--attempts", type=int, default=30)
    p.add_argument("--interval", type=float, default=2.0)

    args = p.parse_args(argv)
    outputs = args.outputs or ["HDMI-1", "HDMI-A-1"]

    # stdout goes to the journal, which adds its own timestamps and identifier.
    logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s", stream=sys.stdout)

    install_signal_handlers(args.browser)
    logger.info("Starting menu display service")

    try:
        wait_for_display(args.display, attempts=args.attempts, interval=args.interval)
        configure_display(args.display, outputs=outputs, rotation=args.rotate)
    except (DisplayTimeoutError, DisplaySetupError) as e:
        logger.error("%s", e)
        return 1

    launch_browser(args.browser, args.url)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())

"""Kiosk installer: turns a Raspberry Pi into a full-screen menu display.

Core design goals:
- Ordered, fail-fast provisioning steps
- Idempotent re-runs (back up, never delete)
- Pre-built bundle first, source build as fallback
- Centralized logging
"""

__version__ = "1.0.0"

__all__ = ["__version__"]

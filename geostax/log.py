"""Logging under the ``geostax`` hierarchy.

Level and format come from :mod:`geostax.config` (``GEOSTAX_LOG_LEVEL``).
The library logs dispatch fallbacks and numerical branch selection at DEBUG.
"""

from __future__ import annotations

import logging
import sys

from geostax.config import get_config

_CONFIGURED = False


def _configure_once() -> None:
    """One-time lazy init of the ``geostax`` root logger."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    _CONFIGURED = True

    config = get_config()
    root = logging.getLogger("geostax")
    root.setLevel(getattr(logging, config.log_level, logging.WARNING))

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(logging.Formatter(config.log_format))
    root.addHandler(console)


def get_logger(name: str) -> logging.Logger:
    """Return a logger under the ``geostax`` hierarchy.

    Args:
        name: Typically ``__name__`` of the calling module.

    Returns:
        A :class:`logging.Logger` instance.
    """
    _configure_once()
    if name.startswith("geostax."):
        name = name[len("geostax.") :]
    return logging.getLogger(f"geostax.{name}")

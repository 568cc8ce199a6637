"""
Logging setup for the portal.

Every module logs through ``logging.getLogger(__name__)``; this module only
attaches a handler to the package logger once at startup.
"""

import logging

PACKAGE_LOGGER = "alumni_portal"

FORMATTER = logging.Formatter(
    "%(asctime)s %(levelname)s [%(name)s] %(message)s",
    "%Y-%m-%d %H:%M:%S",
)


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stream handler to the package logger (safe to call twice)."""
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level.upper())

    if not any(getattr(h, "_portal_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(FORMATTER)
        handler._portal_handler = True
        logger.addHandler(handler)

    return logger

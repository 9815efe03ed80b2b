"""Logging setup for the crudforge package."""

import logging

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | int = "WARNING") -> logging.Logger:
    """Attach a single stream handler to the `crudforge` logger.

    Safe to call more than once; the level is updated in place.
    """
    logger = logging.getLogger("crudforge")
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.WARNING
    logger.setLevel(level)
    if not any(getattr(h, "_crudforge", False) for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._crudforge = True  # type: ignore[attr-defined]
        logger.addHandler(handler)
    return logger

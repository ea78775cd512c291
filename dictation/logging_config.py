"""Logging setup from LOG_LEVEL / LOG_FILE. Called once by the server lifespan and the client CLI."""
from __future__ import annotations

import logging
import os

from dictation.config import get_settings

_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def configure_logging(level: str | None = None, log_file: str | None = None) -> None:
    settings = get_settings()
    level_name = (level or settings.LOG_LEVEL or "INFO").upper()
    path = log_file if log_file is not None else settings.LOG_FILE

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if path:
        try:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            handlers.append(logging.FileHandler(path, encoding="utf-8"))
        except OSError as e:
            logging.getLogger(__name__).warning("Log file %s not writable: %s", path, e)

    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=_FORMAT,
        handlers=handlers,
        force=True,
    )

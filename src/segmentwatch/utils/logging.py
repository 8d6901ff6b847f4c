from __future__ import annotations

import logging
from typing import Optional

from segmentwatch.config.models import LoggingSettings


def configure_logging(settings: LoggingSettings, *, level_override: Optional[str] = None) -> None:
    level_name = (level_override or settings.level).upper()
    level = getattr(logging, level_name, None)
    if not isinstance(level, int):
        raise ValueError(f"Invalid log level: {level_name}")

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.file is not None:
        settings.file.parent.mkdir(parents=True, exist_ok=True)
        handlers.insert(0, logging.FileHandler(settings.file, encoding="utf-8"))

    logging.basicConfig(level=level, format=settings.format, handlers=handlers, force=True)
    # urllib3 logs every retry at DEBUG/WARNING; keep it at WARNING unless we are debugging.
    logging.getLogger("urllib3").setLevel(level if level <= logging.DEBUG else logging.WARNING)

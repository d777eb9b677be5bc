from __future__ import annotations

import logging
import os

_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def configure_logging() -> None:
    level_name = os.getenv("LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)

    logging.basicConfig(level=level, format=_FORMAT)

    # httpx logs every request at INFO; the CRPT client logs its own.
    if level > logging.DEBUG:
        logging.getLogger("httpx").setLevel(logging.WARNING)

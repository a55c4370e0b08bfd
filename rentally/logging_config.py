from __future__ import annotations

import logging
import os

_configured = False


def configure_logging(level: str | int | None = None) -> None:
    """Configure root logging once.

    Priority: explicit arg > RENTALLY_LOG_LEVEL > DEBUG if RENTALLY_ENV=dev > INFO.
    """
    global _configured
    if _configured:
        return
    if level is None:
        env_level = os.getenv("RENTALLY_LOG_LEVEL")
        if env_level:
            level = env_level.upper()
        elif os.getenv("RENTALLY_ENV", "").lower() == "dev":
            level = "DEBUG"
        else:
            level = "INFO"
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    _configured = True

"""Logging setup shared by the API process and tests."""

from __future__ import annotations

import logging


def setup_logging(level: str = "INFO", debug: bool = False) -> None:
    """Configure root logging once for the process."""
    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        level=log_level,
    )
    logging.getLogger("schedulink").setLevel(log_level)

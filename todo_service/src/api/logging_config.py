"""
Logging setup for the service.

``setup_logging`` attaches a single console handler to the root logger the
first time it is called. Later calls only adjust the level, so building the
app repeatedly (as the tests do) never duplicates output.
"""
from __future__ import annotations

import logging

_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


# PUBLIC_INTERFACE
def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger with a console handler at ``level``."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    if root.handlers:
        return

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt=_FORMAT, datefmt=_DATE_FORMAT))
    root.addHandler(handler)

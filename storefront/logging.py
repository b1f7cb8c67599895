from __future__ import annotations

import logging
from typing import Optional

LOGGER_NAME = "storefront"


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """Package logger, or a child of it when ``name`` is given."""
    root = logging.getLogger(LOGGER_NAME)
    if not root.handlers:
        handler = logging.StreamHandler()
        formatter = logging.Formatter("[%(levelname)s] %(name)s: %(message)s")
        handler.setFormatter(formatter)
        root.addHandler(handler)
        root.setLevel(logging.INFO)
    return root.getChild(name) if name else root

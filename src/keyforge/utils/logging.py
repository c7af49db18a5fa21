import logging
import sys

from ..config import load_settings

ROOT_LOGGER = "keyforge"


def get_logger(name: str | None = None):
    """Return the ``keyforge`` logger, or a child of it for ``name``.

    The stdout handler lives on the root ``keyforge`` logger only; module
    loggers propagate to it and inherit its level.
    """
    root = logging.getLogger(ROOT_LOGGER)
    if not root.handlers:
        h = logging.StreamHandler(sys.stdout)
        fmt = logging.Formatter("[%(asctime)s] %(levelname)s %(message)s")
        h.setFormatter(fmt)
        root.addHandler(h)
        root.setLevel(getattr(logging, load_settings().log_level, logging.INFO))
    if name is None or name == ROOT_LOGGER:
        return root
    return logging.getLogger(name if name.startswith(ROOT_LOGGER + ".") else f"{ROOT_LOGGER}.{name}")

import logging
import sys

from foodcart.config import settings


def get_logger(name: str) -> logging.Logger:
    """
    Return the "foodcart.<name>" logger, attaching a stdout handler the first
    time it is requested. Output looks like "[CART] message".
    """
    log = logging.getLogger(f"foodcart.{name}")
    log.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
    if not log.handlers:
        h = logging.StreamHandler(sys.stdout)
        h.setFormatter(logging.Formatter(f"[{name.upper()}] %(levelname)s %(message)s"))
        log.addHandler(h)
        log.propagate = False
    return log

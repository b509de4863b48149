import logging
import os
import sys
from typing import List, Optional, Union

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"
NAMESPACE = "inventory"

_CONFIGURED_FLAG = "_inventory_configured"


def _coerce_level(value: Optional[Union[str, int]]) -> int:
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        name = value.strip().upper()
        if name == "WARN":
            name = "WARNING"
        level = logging.getLevelName(name)
        if isinstance(level, int):
            return level
    return logging.INFO


def _handlers(level: int) -> List[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    log_file = os.environ.get("LOG_FILE")
    if log_file:
        try:
            handlers.append(logging.FileHandler(log_file, encoding="utf-8"))
        except OSError as exc:
            sys.stderr.write(f"LOG_FILE {log_file} could not be opened ({exc}); logging to stdout only\n")

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    return handlers


def get_logger(name: str) -> logging.Logger:
    """Return the stdout logger `inventory.<name>`.

    Level comes from LOG_LEVEL (default INFO); LOG_FILE adds an appending file
    handler. Configuration happens on the first call for a given name.
    """
    logger = logging.getLogger(f"{NAMESPACE}.{name}")
    if getattr(logger, _CONFIGURED_FLAG, False):
        return logger

    level = _coerce_level(os.environ.get("LOG_LEVEL", "INFO"))
    logger.setLevel(level)
    for handler in _handlers(level):
        logger.addHandler(handler)

    logger.propagate = False
    setattr(logger, _CONFIGURED_FLAG, True)
    return logger

"""Options that configure a Kubeaudit instance."""

from __future__ import annotations

import logging
from typing import Any, Callable

STANDARD_LOGGER_NAME = "kubeaudit"
_HANDLER_NAME = "kubeaudit-standard"

Option = Callable[[Any], None]


def _standard_handler() -> logging.Handler:
    logger = logging.getLogger(STANDARD_LOGGER_NAME)
    for handler in logger.handlers:
        if handler.get_name() == _HANDLER_NAME:
            return handler
    handler = logging.StreamHandler()
    handler.set_name(_HANDLER_NAME)
    logger.addHandler(handler)
    if logger.level == logging.NOTSET:
        logger.setLevel(logging.INFO)
    return handler


def with_logger(formatter: logging.Formatter) -> Option:
    """Return an option that sets the formatter of the package's log output."""

    def option(_auditor: Any) -> None:
        _standard_handler().setFormatter(formatter)

    return option
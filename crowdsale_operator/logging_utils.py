from __future__ import annotations

import logging
from typing import Final, Optional

_LOGGER_NAME: Final[str] = "crowdsale_operator"


def get_operator_logger(debug: bool = False) -> logging.Logger:
    """Return the shared operator logger, attaching a console handler once."""

    logger = logging.getLogger(_LOGGER_NAME)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                "[%(asctime)s] %(levelname)s %(message)s", "%Y-%m-%d %H:%M:%S"
            )
        )
        logger.addHandler(handler)
    logger.setLevel(logging.DEBUG if debug else logging.INFO)
    logger.propagate = False
    return logger


def log_section(logger: logging.Logger, header: str, content: Optional[str] = None) -> None:
    logger.info(header)
    if content:
        logger.info(content)

from __future__ import annotations

import logging
import sys


def configure_logging(verbose: bool = False) -> None:
    # stdout carries the line protocol; diagnostics go to stderr only.
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(levelname)s %(name)s %(message)s",
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

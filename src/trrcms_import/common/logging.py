"""Shared logging helpers for the import pipeline."""

from __future__ import annotations

import logging


def configure_logging(*, level: int = logging.INFO, force: bool = False) -> None:
    """Initialise the root logger once with the pipeline's default format.

    Pass ``force=True`` to reconfigure from tests or from the CLI when ``--verbose``
    is given after logging was already set up.
    """

    logging.basicConfig(
        level=level,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        force=force,
    )

#!/usr/bin/env python
"""Dramatiq worker entry point."""

import os
import shutil
import sys

import structlog

from cpq.logging import setup_logging

setup_logging()
logger = structlog.get_logger(__name__)


def main() -> None:
    """Exec into the Dramatiq CLI for the cpq.tasks package.

    Extra command line arguments are passed through to dramatiq.
    """
    dramatiq_path = shutil.which("dramatiq")
    if dramatiq_path is None:
        logger.error("Dramatiq executable not found in PATH")
        sys.exit(1)

    logger.info("Starting Dramatiq worker", args=sys.argv[1:])
    os.execv(dramatiq_path, [dramatiq_path, "cpq.tasks", *sys.argv[1:]])


if __name__ == "__main__":
    main()

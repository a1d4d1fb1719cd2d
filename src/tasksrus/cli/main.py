# src/tasksrus/cli/main.py

"""
CLI entrypoint.

Initializes logging, opens the task store, then runs the console shell.
Failing to open or migrate the store aborts startup with exit code 1.
"""

from __future__ import annotations

import logging
import sys

from ..cli.bootstrap import create_initial_state
from ..config import get_settings
from ..connectors.console_connector import run_console_loop
from ..errors import TaskStoreError
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main() -> int:
    settings = get_settings()

    level_name = str(getattr(settings, "log_level", "INFO")).upper()
    console_level = getattr(logging, level_name, logging.INFO)
    setup_logging(log_dir=settings.log_dir, console_level=console_level)

    logger.info("Starting %s...", settings.app_name)

    try:
        state = create_initial_state(settings=settings)
    except TaskStoreError as e:
        logger.critical("Cannot open task store %s: %s", settings.db_path, e)
        return 1

    try:
        if settings.console_enabled:
            run_console_loop(state)
        else:
            logger.info("Console disabled; store at %s is migrated and ready.", settings.db_path)
    finally:
        state.store.close()
        logger.info("Bye.")

    return 0


if __name__ == "__main__":
    sys.exit(main())

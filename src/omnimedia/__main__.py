"""
OmniMedia Package Main Entry Point

Runs the CLI when the package is executed with ``python -m omnimedia``.
"""

import logging
import sys

from omnimedia.cli.typer_app import app
from omnimedia.shared.constants import CLIDefaults

logger = logging.getLogger(__name__)


if __name__ == "__main__":
    try:
        app()
    except KeyboardInterrupt:
        logger.info("Command interrupted by user")
        sys.exit(CLIDefaults.EXIT_INTERRUPTED)

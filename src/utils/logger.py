"""Process-wide logging for the API server and the ingredient-scanner CLI.

Records go to stdout as ``time - logger - LEVEL - message``. The HTTP, OpenAI
and MongoDB client libraries log each request they make, so they are held at
WARNING unless the caller names a different set.
"""

import logging
import sys
from collections.abc import Iterable

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

QUIET_LOGGERS = ("httpx", "openai", "pymongo")


def setup_logging(level: str = "INFO", quiet: Iterable[str] = QUIET_LOGGERS) -> None:
    """Install the stdout handler on the root logger.

    Only the first call has an effect, so the API server and the CLI can both
    call it without stacking handlers.

    Args:
        level: Level name from ``log_level`` in the config or ``LOG_LEVEL``.
            A name ``logging`` does not know is treated as INFO.
        quiet: Loggers raised to WARNING.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))
    root.addHandler(handler)
    root.setLevel(logging.getLevelNamesMapping().get(level.upper(), logging.INFO))

    for name in quiet:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)

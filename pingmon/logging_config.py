"""Logging setup shared by the client and collector processes.

Both processes print their statistics to stdout on exit, so log records go
to stderr and the two streams can be redirected independently.
"""

import logging
import os
import sys

LEVEL_ENV_VAR = "PINGMON_LOG_LEVEL"
DEFAULT_LEVEL = logging.INFO

LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] %(message)s"

# HTTP stacks that log every connection or request at INFO/DEBUG
NOISY_LOGGERS = ("urllib3", "aiohttp.access")


def resolve_level(name: str | None) -> int:
    """Map a level name such as ``"debug"`` to its numeric logging level.

    Unknown or empty names resolve to INFO so a typo never stops a process
    from starting.
    """
    if not name:
        return DEFAULT_LEVEL
    level = logging.getLevelName(name.strip().upper())
    return level if isinstance(level, int) else DEFAULT_LEVEL


def configure_logging() -> None:
    """Install the root handler using the level named by PINGMON_LOG_LEVEL.

    Calling it again replaces the previous handler, which keeps tests and
    repeated entry point calls from stacking duplicate output.

    Examples:
        $ PINGMON_LOG_LEVEL=debug pingmon-client      # every retry decision
        $ PINGMON_LOG_LEVEL=warning pingmon-collector # failures only
    """
    requested = os.environ.get(LEVEL_ENV_VAR)
    level = resolve_level(requested)

    logging.basicConfig(
        level=level,
        format=LOG_FORMAT,
        stream=sys.stderr,
        force=True,
    )
    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    if requested and not isinstance(logging.getLevelName(requested.strip().upper()), int):
        logging.getLogger(__name__).warning(
            "Unknown %s=%r, using %s", LEVEL_ENV_VAR, requested, logging.getLevelName(level)
        )

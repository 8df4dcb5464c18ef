"""Singleton logging configuration.

The language server talks to its client over stdout, so all log output
goes to stderr. ``setup_logging()`` is idempotent (guarded by a
module-level flag) because both the CLI and the test suite call it.
"""

import logging
import sys

LOG_FORMAT = "%(asctime)s - %(levelname)s - [%(name)s] - %(message)s"
LOG_DATEFMT = "%Y-%m-%dT%H:%M:%S"

# Third-party loggers to suppress to WARNING
_SUPPRESSED_LOGGERS = (
    "httpx",
    "httpcore",
    "web3",
    "urllib3",
    "aiohttp",
    "pygls",
)

_configured = False


def setup_logging(level: str = "INFO") -> None:
    """Configure the root logger on stderr and quiet chatty libraries.

    Idempotent — second call is a no-op.
    """
    global _configured  # noqa: PLW0603
    if _configured:
        return
    _configured = True

    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        stream=sys.stderr,
    )

    for name in _SUPPRESSED_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def set_level(level: str) -> None:
    """Change the root level after setup (e.g. ``--verbose``)."""
    logging.getLogger().setLevel(getattr(logging, level.upper()))

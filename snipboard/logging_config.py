"""
Logging configuration for SnipBoard.

Quiet by default; SNIPBOARD_VERBOSE=1 or --verbose turns on debug output.
"""

import logging
import sys
import warnings


def configure_quiet_mode(quiet: bool = True):
    """
    Configure logging to suppress verbose library output.

    Silences aiohttp access logs and library warnings.

    Args:
        quiet: If True, suppress verbose output. If False, show everything.
    """
    if quiet:
        warnings.filterwarnings("ignore")
        logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
        logging.getLogger("aiohttp.server").setLevel(logging.WARNING)
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    warnings.filterwarnings("default")

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)

    # Add stderr handler if not already present
    if not any(isinstance(h, logging.StreamHandler) and h.stream == sys.stderr
               for h in root_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        root_logger.addHandler(handler)

    for name in ("snipboard", "aiohttp", "httpx"):
        logging.getLogger(name).setLevel(logging.DEBUG)


def configure_ops_log(data_dir):
    """Configure a persistent operations log for a data directory.

    Writes to {data_dir}/snipboard-ops.log using a rotating file handler
    (1MB max, 3 backups). Returns the handler so it can be removed on
    close(), or None if the log file cannot be opened.
    """
    from logging.handlers import RotatingFileHandler
    from pathlib import Path

    log_path = Path(data_dir) / "snipboard-ops.log"
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            str(log_path),
            maxBytes=1_000_000,
            backupCount=3,
        )
    except OSError:
        return None
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    snip_logger = logging.getLogger("snipboard")
    snip_logger.addHandler(handler)
    # Let INFO through even in quiet mode
    if snip_logger.level == logging.NOTSET or snip_logger.level > logging.INFO:
        snip_logger.setLevel(logging.INFO)

    return handler

"""
Logging configuration for tryll.

Store modules log through ``logging.getLogger(__name__)`` under the ``tryll``
namespace. Nothing is written to stdout: the MCP server speaks JSON-RPC there.
"""

import logging
import sys
from logging.handlers import RotatingFileHandler
from pathlib import Path

OPS_LOG_NAME = "tryll-ops.log"


def configure_ops_log(data_dir) -> logging.Handler:
    """Configure a persistent operations log for a data directory.

    Writes to {data_dir}/tryll-ops.log using a rotating file handler
    (1MB max, 3 backups). Returns the handler so callers can remove it.
    """
    log_dir = Path(data_dir)
    log_dir.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        str(log_dir / OPS_LOG_NAME),
        maxBytes=1_000_000,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(
        "%(asctime)s %(levelname)s %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    ))

    tryll_logger = logging.getLogger("tryll")
    tryll_logger.addHandler(handler)
    # Let INFO through even when the root logger is quieter
    if tryll_logger.level == logging.NOTSET or tryll_logger.level > logging.INFO:
        tryll_logger.setLevel(logging.INFO)

    return handler


def enable_debug_mode():
    """Enable debug-level logging to stderr."""
    tryll_logger = logging.getLogger("tryll")
    tryll_logger.setLevel(logging.DEBUG)

    if not any(isinstance(h, logging.StreamHandler) and getattr(h, "stream", None) is sys.stderr
               for h in tryll_logger.handlers):
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)s %(name)s: %(message)s",
            datefmt="%H:%M:%S"
        ))
        tryll_logger.addHandler(handler)

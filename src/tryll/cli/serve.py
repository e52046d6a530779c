"""tryll serve — run the MCP stdio server over the local data directory.

stdout carries JSON-RPC, so nothing here prints to it; diagnostics go to
the ops log and (with --verbose) stderr.
"""

from __future__ import annotations

import logging

import typer

from tryll.cli.state import load_cli_config, open_store
from tryll.logging_config import configure_ops_log
from tryll.server import create_mcp_server

logger = logging.getLogger(__name__)


def serve_cmd(ctx: typer.Context) -> None:
    """Start the MCP server on stdio."""
    cfg = load_cli_config(ctx)
    store = open_store(ctx, source=None, cfg=cfg)
    if cfg.logging.ops_log:
        configure_ops_log(store.data_dir)

    logger.info("Starting MCP server (data dir: %s)", store.data_dir)
    server = create_mcp_server(store)
    server.run(transport="stdio")

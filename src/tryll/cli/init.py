"""tryll init — create the global config file and the data directory.

Existing files are left untouched, so running it again is safe.
"""

from __future__ import annotations

import typer
from rich.markup import escape

from tryll.cli.state import console, load_cli_config
from tryll.config import ensure_global_config


def init_cmd(ctx: typer.Context) -> None:
    """Write ~/.tryll/config.yaml (if missing) and create the data directory."""
    cfg = load_cli_config(ctx)

    cfg_path = ensure_global_config()
    console.print(f"  [green]✓[/] {escape(str(cfg_path))} (global config)")

    data_dir = cfg.storage.data_dir
    data_dir.mkdir(parents=True, exist_ok=True)
    console.print(f"  [green]✓[/] {escape(str(data_dir))} (data directory)")

    console.print("\nNext steps:")
    console.print("  1. tryll create <name>    (start a dataset)")
    console.print("  2. tryll serve            (expose it to an MCP client)")

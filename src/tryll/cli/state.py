"""Shared CLI state: global options and store construction."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console

from tryll.cli.errors import err_config, err_store_error
from tryll.config import ConfigError, TryllConfig, load_config
from tryll.store import Store, StoreError

console = Console()


@dataclass
class CliState:
    """Values of the global options, attached to ``ctx.obj``."""

    data_dir: Path | None = None
    verbose: bool = False


def load_cli_config(ctx: typer.Context) -> TryllConfig:
    """Load the layered config and apply the ``--data-dir`` flag on top."""
    state = ctx.obj if isinstance(ctx.obj, CliState) else CliState()
    try:
        cfg = load_config()
    except ConfigError as exc:
        console.print(err_config(str(exc)))
        raise typer.Exit(1) from exc
    if state.data_dir is not None:
        cfg.storage.data_dir = state.data_dir
    return cfg


def open_store(
    ctx: typer.Context,
    *,
    source: str | None = "cli",
    cfg: TryllConfig | None = None,
) -> Store:
    """Build a store from config. CLI changes are committed with source ``cli``."""
    if cfg is None:
        cfg = load_cli_config(ctx)
    try:
        return Store.from_config(cfg, source=source)
    except StoreError as exc:
        console.print(err_store_error(exc))
        raise typer.Exit(1) from exc


def fail(exc: StoreError, project: str | None = None) -> typer.Exit:
    """Print the actionable message for *exc* and return the exit to raise."""
    console.print(err_store_error(exc, project))
    return typer.Exit(1)

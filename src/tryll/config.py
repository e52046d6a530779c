"""Tryll configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (TRYLL_DATA_DIR / DATA_DIR, TRYLL_HISTORY_SOURCE)
  3. Per-directory tryll.yaml  (current working directory)
  4. Global ~/.tryll/config.yaml
  5. Hardcoded defaults

Values are read once at startup and passed to the store; nothing mutates
them afterwards. Global config must never contain credentials.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from tryll.store.history import COMMIT_SOURCES, MAX_HISTORY
from tryll.store.models import DEFAULT_LICENSE
from tryll.store.store import PREVIEW_LENGTH

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".tryll"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "tryll.yaml"

# Fields that suggest a credential; forbidden in global config.
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"api[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

# Known top-level sections. Unknown keys produce a warning
_KNOWN_SECTIONS: frozenset[str] = frozenset(["storage", "chunks", "history", "logging"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when a config file contains an invalid or forbidden value."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class StorageCfg:
    """Where project documents live (tryll.yaml: storage:)."""

    data_dir: Path = field(default_factory=lambda: Path("datasets"))


@dataclass
class ChunksCfg:
    """Chunk defaults (tryll.yaml: chunks:)."""

    default_license: str = DEFAULT_LICENSE
    preview_length: int = PREVIEW_LENGTH


@dataclass
class HistoryCfg:
    """Commit history settings (tryll.yaml: history:).

    Attributes:
        enabled: Record a commit after every store mutation.
        max_commits: Commits retained per project (oldest dropped).
        source: Commit source label for changes made by this process.
    """

    enabled: bool = True
    max_commits: int = MAX_HISTORY
    source: str = "mcp"


@dataclass
class LoggingCfg:
    """Operations log (tryll.yaml: logging:)."""

    ops_log: bool = True


@dataclass
class TryllConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    storage: StorageCfg = field(default_factory=StorageCfg)
    chunks: ChunksCfg = field(default_factory=ChunksCfg)
    history: HistoryCfg = field(default_factory=HistoryCfg)
    logging: LoggingCfg = field(default_factory=LoggingCfg)


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any credential-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Global config '{source}' contains a forbidden key '{full}'.\n"
                        f"  Credentials must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _validate_data_dir(data_dir: str) -> None:
    """storage.data_dir must be a local directory, not a URL."""
    if data_dir.startswith(("http://", "https://", "ftp://", "ws://", "wss://", "//")):
        raise ConfigError(
            f"storage.data_dir must be a local directory path, not a URL: '{data_dir}'\n"
            "  Example: storage.data_dir: ./datasets"
        )


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def _positive_int(value: Any, name: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{name} must be an integer, got '{value}'") from exc
    if number < 1:
        raise ConfigError(f"{name} must be >= 1, got {number}")
    return number


def _check_source(value: str, origin: str) -> str:
    if value not in COMMIT_SOURCES:
        raise ConfigError(
            f"{origin} must be one of {', '.join(COMMIT_SOURCES)}, got '{value}'"
        )
    return value


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> TryllConfig:
    """Build a *TryllConfig* from a merged raw YAML dict."""
    cfg = TryllConfig()

    if "storage" in data:
        s = data["storage"] or {}
        if s.get("data_dir"):
            data_dir = str(s["data_dir"])
            _validate_data_dir(data_dir)
            cfg.storage = StorageCfg(data_dir=Path(data_dir).expanduser())

    if "chunks" in data:
        c = data["chunks"] or {}
        cfg.chunks = ChunksCfg(
            default_license=str(c.get("default_license") or cfg.chunks.default_license),
            preview_length=_positive_int(
                c.get("preview_length", cfg.chunks.preview_length), "chunks.preview_length"
            ),
        )

    if "history" in data:
        h = data["history"] or {}
        cfg.history = HistoryCfg(
            enabled=bool(h.get("enabled", cfg.history.enabled)),
            max_commits=_positive_int(
                h.get("max_commits", cfg.history.max_commits), "history.max_commits"
            ),
            source=_check_source(str(h.get("source", cfg.history.source)), "history.source"),
        )

    if "logging" in data:
        lg = data["logging"] or {}
        cfg.logging = LoggingCfg(ops_log=bool(lg.get("ops_log", cfg.logging.ops_log)))

    return cfg


def _apply_env_overrides(cfg: TryllConfig) -> TryllConfig:
    """Apply TRYLL_* environment variable overrides (layer 2)."""
    data_dir = os.environ.get("TRYLL_DATA_DIR") or os.environ.get("DATA_DIR")
    if data_dir:
        _validate_data_dir(data_dir)
        cfg.storage.data_dir = Path(data_dir).expanduser()
    if source := os.environ.get("TRYLL_HISTORY_SOURCE"):
        cfg.history.source = _check_source(source, "TRYLL_HISTORY_SOURCE")
    return cfg


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> TryllConfig:
    """Load and return a merged *TryllConfig*.

    Applies layers in order: global → per-directory → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *tryll.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Returns:
        Fully merged *TryllConfig* with env var overrides applied.

    Raises:
        ConfigError: If global config contains credential-like fields, or a
            value is invalid (URL data dir, non-positive limits, unknown
            commit source).
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    # Layer 1: global config
    if global_path.exists():
        raw_global = yaml.safe_load(global_path.read_text(encoding="utf-8")) or {}
        _check_no_api_keys(raw_global, global_path)
        _warn_unknown_keys(raw_global, global_path)
        merged = _deep_merge(merged, raw_global)

    # Layer 2: per-directory config
    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        raw_project = yaml.safe_load(project_cfg_path.read_text(encoding="utf-8")) or {}
        _warn_unknown_keys(raw_project, project_cfg_path)
        merged = _deep_merge(merged, raw_project)

    cfg = _cfg_from_dict(merged)

    # Layer 3: env var overrides
    cfg = _apply_env_overrides(cfg)

    return cfg


def ensure_global_config(
    global_config_path: Path | None = None,
) -> Path:
    """Create ``~/.tryll/config.yaml`` with defaults if it does not exist.

    Creates parent directory with mode 0o700 and the config file with
    mode 0o600 (owner-readable only).

    Args:
        global_config_path: Override path (for testing).

    Returns:
        Path to the global config file.
    """
    target = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    target.parent.mkdir(mode=0o700, parents=True, exist_ok=True)

    if not target.exists():
        content = (
            "# Tryll global configuration.\n"
            "# NEVER store credentials here — use environment variables.\n"
            "\n"
            "storage:\n"
            "  data_dir: ./datasets\n"
            "\n"
            "chunks:\n"
            f"  default_license: {DEFAULT_LICENSE}\n"
            f"  preview_length: {PREVIEW_LENGTH}\n"
            "\n"
            "history:\n"
            "  enabled: true\n"
            f"  max_commits: {MAX_HISTORY}\n"
        )
        target.write_text(content, encoding="utf-8")
        target.chmod(0o600)

    return target

"""JSON document persistence for projects and their history.

Layout inside the data directory (one unit per project):

    <name>.json           project document
    <name>.history.json   commit history (newest first)
    <name>.export.json    flat export, written only on request

Every write goes through a temp file in the same directory followed by an
atomic rename, so readers never observe a half-written document.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from tryll.store.errors import CorruptDocumentError, NotFoundError
from tryll.store.models import HistoryLog, Project
from tryll.store.validation import check_project_name

_PROJECT_SUFFIX = ".json"
_HISTORY_SUFFIX = ".history.json"
_EXPORT_SUFFIX = ".export.json"


class ProjectFiles:
    """Reads and writes project, history, and export documents under *data_dir*."""

    def __init__(self, data_dir: Path | str) -> None:
        """Store the data directory. It is created lazily on first write.

        Args:
            data_dir: Directory holding one JSON document per project.
        """
        self.data_dir = Path(data_dir)

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def project_path(self, name: str) -> Path:
        return self.data_dir / f"{check_project_name(name)}{_PROJECT_SUFFIX}"

    def history_path(self, name: str) -> Path:
        return self.data_dir / f"{check_project_name(name)}{_HISTORY_SUFFIX}"

    def export_path(self, name: str) -> Path:
        return self.data_dir / f"{check_project_name(name)}{_EXPORT_SUFFIX}"

    # ------------------------------------------------------------------
    # Projects
    # ------------------------------------------------------------------

    def exists(self, name: str) -> bool:
        return self.project_path(name).is_file()

    def list_names(self) -> list[str]:
        """Return project names (filename stems), sorted; side documents excluded."""
        if not self.data_dir.is_dir():
            return []
        names = []
        for path in self.data_dir.iterdir():
            fname = path.name
            if not path.is_file() or not fname.endswith(_PROJECT_SUFFIX):
                continue
            if fname.endswith((_HISTORY_SUFFIX, _EXPORT_SUFFIX)):
                continue
            names.append(fname[: -len(_PROJECT_SUFFIX)])
        return sorted(names)

    def load(self, name: str) -> Project:
        """Load a project document.

        Raises:
            NotFoundError: If the project document does not exist.
            CorruptDocumentError: If the document cannot be parsed.
        """
        path = self.project_path(name)
        if not path.is_file():
            raise NotFoundError(f'Project "{name}" not found', entity="project")
        data = _read_json(path)
        try:
            return Project.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise CorruptDocumentError(f"Project document '{path.name}' is malformed: {exc}") from exc

    def save(self, project: Project, name: str | None = None) -> None:
        """Persist *project* under *name* (defaults to ``project.name``)."""
        write_json(self.project_path(name or project.name), project.to_dict())

    def delete(self, name: str) -> None:
        path = self.project_path(name)
        if not path.is_file():
            raise NotFoundError(f'Project "{name}" not found', entity="project")
        path.unlink()

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    def load_history(self, name: str) -> HistoryLog:
        """Load the history document; a missing document is an empty log."""
        path = self.history_path(name)
        if not path.is_file():
            return HistoryLog(project=name)
        data = _read_json(path)
        try:
            return HistoryLog.from_dict(data)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            raise CorruptDocumentError(f"History document '{path.name}' is malformed: {exc}") from exc

    def save_history(self, name: str, history: HistoryLog) -> None:
        write_json(self.history_path(name), history.to_dict())

    # ------------------------------------------------------------------
    # Exports
    # ------------------------------------------------------------------

    def write_export(self, name: str, records: list[dict[str, Any]]) -> Path:
        path = self.export_path(name)
        write_json(path, records)
        return path


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CorruptDocumentError(f"Document '{path.name}' is not valid JSON: {exc}") from exc


def write_json(path: Path, data: Any) -> None:
    """Write *data* as indented JSON to *path* atomically (temp → rename).

    Creates parent directories if needed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise

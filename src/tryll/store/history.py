"""Append-only, bounded commit history per project.

Each commit stores a full, independent snapshot of the project document, so
any retained commit can be restored without replaying others. The log is kept
newest-first and truncated to ``max_commits``; the oldest entries are dropped
without archival.

Recording is best effort: ``record()`` never raises. A failure is logged and
the mutation being documented stays committed.
"""

from __future__ import annotations

import logging
from typing import Any

from tryll.store.errors import InvalidInputError, NotFoundError
from tryll.store.files import ProjectFiles
from tryll.store.models import Commit, CommitStats, Project

logger = logging.getLogger(__name__)

MAX_HISTORY: int = 50
COMMIT_SOURCES: tuple[str, ...] = ("browser", "mcp", "cli")


def check_source(source: str) -> str:
    if source not in COMMIT_SOURCES:
        raise InvalidInputError(
            f"Unknown commit source '{source}' (expected one of: {', '.join(COMMIT_SOURCES)})"
        )
    return source


class HistoryLedger:
    """Commit log stored next to each project document."""

    def __init__(self, files: ProjectFiles, max_commits: int = MAX_HISTORY) -> None:
        if max_commits < 1:
            raise ValueError("max_commits must be >= 1")
        self._files = files
        self.max_commits = max_commits

    def record(self, name: str, action: str, summary: str, source: str = "mcp") -> Commit | None:
        """Snapshot the current state of *name* as a new commit.

        Returns the new commit, or None if recording failed.
        """
        try:
            project = self._files.load(name)
            history = self._files.load_history(name)
            commit = Commit(
                action=action,
                summary=summary,
                source=source,
                stats=CommitStats(
                    categories=len(project.categories),
                    chunks=project.chunk_count,
                ),
                snapshot=project.clone(),
            )
            history.commits.insert(0, commit)
            del history.commits[self.max_commits:]
            self._files.save_history(name, history)
        except Exception:
            logger.warning("History commit failed for %s (%s)", name, action, exc_info=True)
            return None
        logger.debug("Recorded commit %s on %s: %s", commit.id, name, action)
        return commit

    def commits(self, name: str) -> list[dict[str, Any]]:
        """Commits newest-first, without snapshots."""
        history = self._files.load_history(name)
        return [c.to_dict(include_snapshot=False) for c in history.commits]

    def get(self, name: str, commit_id: str) -> dict[str, Any]:
        """Full commit plus the next-older commit's snapshot (``prev_snapshot``).

        Raises:
            NotFoundError: If no retained commit has *commit_id*.
        """
        commits = self._files.load_history(name).commits
        for idx, commit in enumerate(commits):
            if commit.id == commit_id:
                data = commit.to_dict()
                older = commits[idx + 1] if idx + 1 < len(commits) else None
                data["prev_snapshot"] = older.snapshot.to_dict() if older else None
                return data
        raise NotFoundError(f'Commit "{commit_id}" not found', entity="commit")

    def rollback(self, name: str, commit_id: str, source: str = "mcp") -> Project:
        """Replace the live document with a commit's snapshot, then record it.

        Raises:
            NotFoundError: If no retained commit has *commit_id*.
        """
        history = self._files.load_history(name)
        target = next((c for c in history.commits if c.id == commit_id), None)
        if target is None:
            raise NotFoundError(f'Commit "{commit_id}" not found', entity="commit")

        restored = target.snapshot.clone()
        self._files.save(restored, name)
        logger.info("Rolled back %s to commit %s (%s)", name, target.id, target.timestamp)
        self.record(name, "rollback", f"Rolled back to commit from {target.timestamp}", source)
        return self._files.load(name)

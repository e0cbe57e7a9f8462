"""Job/Script store — the pipeline's only persistence collaborator.

The pipeline reads one Script and appends one code artifact per run.
Artifacts are versioned per job and never rewritten, so an iteration
request can always point back at the code it started from.
"""

from __future__ import annotations

import logging
import sqlite3
import threading
import uuid
from datetime import datetime
from pathlib import Path
from typing import Protocol

from .models.generation import GeneratedCodeArtifact
from .models.script import Script

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS scripts (
    script_id TEXT PRIMARY KEY,
    body TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS job_code (
    job_id TEXT NOT NULL,
    version INTEGER NOT NULL,
    code TEXT NOT NULL,
    used_fallback INTEGER NOT NULL,
    created_at TEXT NOT NULL,
    PRIMARY KEY (job_id, version)
);
"""


class JobStore(Protocol):
    """Interface the pipeline depends on.

    ``update_job_code`` may return the stored artifact (with its version)
    or None; the pipeline builds the artifact itself in the latter case.
    """

    def get_script(self, script_id: str) -> Script | None: ...

    def update_job_code(
        self, job_id: str, code: str, *, used_fallback: bool = False
    ) -> GeneratedCodeArtifact | None: ...


class SqliteJobStore:
    """SQLite-backed job store in WAL mode.

    An empty *db_path* keeps everything in a private in-memory database,
    which is what tests and one-off runs use.
    """

    def __init__(self, db_path: str = "") -> None:
        if db_path:
            path = Path(db_path).expanduser().resolve()
            path.parent.mkdir(parents=True, exist_ok=True)
            target = str(path)
        else:
            target = ":memory:"
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(target, check_same_thread=False)
        if db_path:
            self._conn.execute("PRAGMA journal_mode=WAL")
            self._conn.execute("PRAGMA synchronous=NORMAL")
        self._conn.executescript(_SCHEMA)

    def save_script(self, script: Script) -> str:
        """Persist *script*, assigning an id when it has none.

        Returns:
            The script id.
        """
        script_id = script.script_id or uuid.uuid4().hex[:12]
        stored = script.model_copy(update={"script_id": script_id})
        with self._lock:
            self._conn.execute(
                "INSERT OR REPLACE INTO scripts (script_id, body, created_at) VALUES (?, ?, ?)",
                (script_id, stored.model_dump_json(), datetime.now().isoformat()),
            )
            self._conn.commit()
        return script_id

    def get_script(self, script_id: str) -> Script | None:
        """Load a script by id, or None."""
        with self._lock:
            row = self._conn.execute(
                "SELECT body FROM scripts WHERE script_id = ?", (script_id,)
            ).fetchone()
        if row is None:
            return None
        return Script.model_validate_json(row[0])

    def update_job_code(
        self, job_id: str, code: str, *, used_fallback: bool = False
    ) -> GeneratedCodeArtifact:
        """Append a new code version for *job_id* and return it."""
        with self._lock:
            row = self._conn.execute(
                "SELECT COALESCE(MAX(version), 0) FROM job_code WHERE job_id = ?", (job_id,)
            ).fetchone()
            artifact = GeneratedCodeArtifact(
                job_id=job_id,
                code=code,
                used_fallback=used_fallback,
                version=row[0] + 1,
            )
            self._conn.execute(
                """INSERT INTO job_code (job_id, version, code, used_fallback, created_at)
                   VALUES (?, ?, ?, ?, ?)""",
                (
                    artifact.job_id,
                    artifact.version,
                    artifact.code,
                    int(artifact.used_fallback),
                    artifact.created_at.isoformat(),
                ),
            )
            self._conn.commit()
        logger.info(
            "Stored code v%d for job %s (%d chars, fallback=%s)",
            artifact.version, job_id, len(code), used_fallback,
        )
        return artifact

    def job_history(self, job_id: str) -> list[GeneratedCodeArtifact]:
        """All code versions for *job_id*, oldest first."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT job_id, version, code, used_fallback, created_at "
                "FROM job_code WHERE job_id = ? ORDER BY version",
                (job_id,),
            ).fetchall()
        return [
            GeneratedCodeArtifact(
                job_id=r[0],
                version=r[1],
                code=r[2],
                used_fallback=bool(r[3]),
                created_at=datetime.fromisoformat(r[4]),
            )
            for r in rows
        ]

    def get_job_code(self, job_id: str) -> GeneratedCodeArtifact | None:
        """Latest code version for *job_id*, or None."""
        history = self.job_history(job_id)
        return history[-1] if history else None

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()


_store: SqliteJobStore | None = None


def get_store() -> SqliteJobStore:
    """Return the process-wide store, opened from ``CODEGEN_JOB_DB`` on first use."""
    global _store
    if _store is None:
        from .config import get_config

        _store = SqliteJobStore(get_config().job_db_path)
    return _store


def reset_store() -> None:
    """Close and drop the process-wide store (for testing)."""
    global _store
    if _store is not None:
        _store.close()
    _store = None

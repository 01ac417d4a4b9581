"""JSON-file persistence for sessions.

Sessions are stored as JSON files in a sessions directory, one file per
session id, plus a ``current`` pointer naming the active one.

Directory layout::

    <sessions_dir>/
        current             ← id of the active session
        <session_id>.json   ← camelCase session record

The store is the only writer; nothing else should touch these files.
"""
from __future__ import annotations

import logging
import os
import pathlib
import tempfile
from typing import Optional

from pydantic import ValidationError

from riffsmith.models.session import Session

logger = logging.getLogger(__name__)

_CURRENT = "current"


class SessionRepository:
    """Reads and writes session records under ``root``."""

    def __init__(self, root: pathlib.Path) -> None:
        self.root = pathlib.Path(root)

    def _path(self, session_id: str) -> pathlib.Path:
        return self.root / f"{session_id}.json"

    def _write_atomic(self, path: pathlib.Path, text: str) -> None:
        """Write via a temp file and rename so a crash never leaves half a record."""
        self.root.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.root, prefix=".tmp-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(text)
            os.replace(tmp, path)
        except BaseException:
            pathlib.Path(tmp).unlink(missing_ok=True)
            raise

    def save(self, session: Session) -> None:
        """Persist ``session`` and mark it current."""
        self._write_atomic(
            self._path(session.session_id),
            session.model_dump_json(by_alias=True, indent=2) + "\n",
        )
        self._write_atomic(self.root / _CURRENT, session.session_id + "\n")

    def load(self, session_id: str) -> Optional[Session]:
        path = self._path(session_id)
        if not path.is_file():
            return None
        try:
            return Session.model_validate_json(path.read_text(encoding="utf-8"))
        except ValidationError as exc:
            logger.warning(f"⚠️ Skipping corrupt session file {path.name}: {exc}")
            return None

    def current_session_id(self) -> Optional[str]:
        pointer = self.root / _CURRENT
        if not pointer.is_file():
            return None
        session_id = pointer.read_text(encoding="utf-8").strip()
        return session_id or None

    def load_current(self) -> Optional[Session]:
        """Return the active session, or None if there is none yet."""
        session_id = self.current_session_id()
        if session_id is None:
            return None
        return self.load(session_id)

    def delete(self, session_id: str) -> None:
        self._path(session_id).unlink(missing_ok=True)
        if self.current_session_id() == session_id:
            (self.root / _CURRENT).unlink(missing_ok=True)

    def list_session_ids(self) -> list[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.stem for p in self.root.glob("*.json"))

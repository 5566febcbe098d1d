"""SQLite-backed record store for prompts and uploaded videos."""

import logging
import sqlite3
import threading
import uuid
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS prompts (
    id TEXT PRIMARY KEY,
    title TEXT NOT NULL,
    template TEXT NOT NULL,
    created_at TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS videos (
    id TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    path TEXT NOT NULL,
    transcription TEXT,
    created_at TEXT NOT NULL
);
"""


class Prompt(BaseModel):
    """Prompt template; ``template`` holds a ``{transcription}`` placeholder."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    template: str
    created_at: datetime = Field(alias="createdAt")


class Video(BaseModel):
    """Uploaded audio file and, once generated, its transcription."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    path: str
    transcription: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class RecordStore:
    """Owns a single SQLite connection shared by every request.

    Access is serialized with a lock so the connection can be used from the
    event loop and from worker threads alike.
    """

    def __init__(self, database_path: str) -> None:
        self._conn = sqlite3.connect(database_path, check_same_thread=False)
        self._conn.row_factory = sqlite3.Row
        self._lock = threading.RLock()
        with self._lock:
            self._conn.executescript(SCHEMA)
        logger.debug("Record store opened at %s", database_path)

    def close(self) -> None:
        with self._lock:
            self._conn.close()

    # -- prompts -------------------------------------------------------------

    def list_prompts(self) -> list[Prompt]:
        """Return every prompt in creation order."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT id, title, template, created_at FROM prompts ORDER BY rowid"
            ).fetchall()
        return [Prompt(**dict(row)) for row in rows]

    def create_prompt(self, title: str, template: str) -> Prompt:
        prompt = Prompt(id=str(uuid.uuid4()), title=title, template=template, created_at=_now())
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT INTO prompts (id, title, template, created_at) VALUES (?, ?, ?, ?)",
                (prompt.id, prompt.title, prompt.template, prompt.created_at.isoformat()),
            )
        return prompt

    # -- videos --------------------------------------------------------------

    def create_video(self, name: str, path: str) -> Video:
        video = Video(id=str(uuid.uuid4()), name=name, path=path, created_at=_now())
        with self._lock, self._conn:
            self._conn.execute(
                "INSERT INTO videos (id, name, path, transcription, created_at) VALUES (?, ?, ?, NULL, ?)",
                (video.id, video.name, video.path, video.created_at.isoformat()),
            )
        return video

    def find_video(self, video_id: str) -> Optional[Video]:
        with self._lock:
            row = self._conn.execute(
                "SELECT id, name, path, transcription, created_at FROM videos WHERE id = ?",
                (video_id,),
            ).fetchone()
        if row is None:
            return None
        return Video(**dict(row))

    def list_videos(self) -> list[Video]:
        """Return every video in upload order, for inspection and maintenance."""
        with self._lock:
            rows = self._conn.execute(
                "SELECT id, name, path, transcription, created_at FROM videos ORDER BY rowid"
            ).fetchall()
        return [Video(**dict(row)) for row in rows]

    def update_video_transcription(self, video_id: str, transcription: str) -> Video:
        """Set the transcription of a video, replacing any previous value."""
        with self._lock, self._conn:
            cursor = self._conn.execute(
                "UPDATE videos SET transcription = ? WHERE id = ?",
                (transcription, video_id),
            )
        video = self.find_video(video_id) if cursor.rowcount else None
        if video is None:
            raise LookupError(f"Video {video_id} does not exist")
        return video

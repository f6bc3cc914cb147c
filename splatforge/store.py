"""Persistent catalogue of uploaded scenes."""

import json
import sqlite3
import threading
from dataclasses import dataclass
from enum import Enum

DEFAULT_DATABASE = "goonr.db"


class SourceKind(Enum):
    """Where the files of a scene come from."""

    ZIP = "Zip"
    DIR = "Dir"
    URL = "Url"

    @property
    def field(self):
        return "url" if self is SourceKind.URL else "path"


@dataclass(frozen=True)
class SceneSource:
    """A scene's location: a zip archive, a directory or a URL."""

    kind: SourceKind
    location: str

    @classmethod
    def zip(cls, path):
        return cls(SourceKind.ZIP, str(path))

    @classmethod
    def directory(cls, path):
        return cls(SourceKind.DIR, str(path))

    @classmethod
    def url(cls, url):
        return cls(SourceKind.URL, str(url))

    def to_dict(self):
        """Externally tagged form, e.g. ``{"Zip": {"path": "..."}}``."""
        return {self.kind.value: {self.kind.field: self.location}}

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict) or len(data) != 1:
            raise ValueError("a source must be an object with exactly one key")
        (tag, body), = data.items()
        try:
            kind = SourceKind(tag)
        except ValueError:
            raise ValueError(f"unknown source kind: {tag!r}") from None
        if not isinstance(body, dict) or not isinstance(body.get(kind.field), str):
            raise ValueError(f"source {tag} needs a string field {kind.field!r}")
        return cls(kind, body[kind.field])


@dataclass(frozen=True)
class SceneMetadata:
    """A scene's name and where its files are."""

    name: str
    source: SceneSource

    def to_dict(self):
        return {"name": self.name, "source": self.source.to_dict()}

    @classmethod
    def from_dict(cls, data):
        return cls(data["name"], SceneSource.from_dict(data["source"]))


class SceneRepository:
    """Scenes kept in an SQLite database; safe to share between threads."""

    def __init__(self, path=DEFAULT_DATABASE):
        self._lock = threading.Lock()
        self._db = sqlite3.connect(str(path), check_same_thread=False)
        with self._lock, self._db:
            self._db.execute(
                "CREATE TABLE IF NOT EXISTS scene (name TEXT PRIMARY KEY, source TEXT NOT NULL)"
            )

    def add_scene(self, scene):
        """Store a scene; raises ValueError if the name is taken."""
        try:
            with self._lock, self._db:
                self._db.execute(
                    "INSERT INTO scene (name, source) VALUES (?, ?)",
                    (scene.name, json.dumps(scene.source.to_dict())),
                )
        except sqlite3.IntegrityError:
            raise ValueError(f"Scene already exists: {scene.name}") from None

    def get_scene(self, name):
        """The scene with this name, or None."""
        with self._lock:
            row = self._db.execute(
                "SELECT name, source FROM scene WHERE name = ?", (name,)
            ).fetchone()
        return None if row is None else self._from_row(row)

    def list_scenes(self):
        """All scenes, ordered by name."""
        with self._lock:
            rows = self._db.execute("SELECT name, source FROM scene ORDER BY name").fetchall()
        return [self._from_row(row) for row in rows]

    def can_add(self, name):
        """True if no scene of this name exists yet."""
        return self.get_scene(name) is None

    def close(self):
        with self._lock:
            self._db.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.close()

    @staticmethod
    def _from_row(row):
        name, source = row
        return SceneMetadata(name, SceneSource.from_dict(json.loads(source)))
"""
Local persisted snapshot

Independent keyed JSON blobs under the client data directory, one file per
key (union_posts.json, union_members.json, ...). Read at startup, written
after every local mutation.
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional

from unionclient.models import INITIAL_POSTS, Member, Post, SiteSettings

logger = logging.getLogger(__name__)

POSTS = "posts"
MEMBERS = "members"
SETTINGS = "settings"
DELETED_POSTS = "deleted_posts"


class LocalSnapshot:
    """Keyed JSON storage"""

    PREFIX = "union_"

    def __init__(self, data_dir: str):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, key: str) -> Path:
        return self.data_dir / f"{self.PREFIX}{key}.json"

    def has(self, key: str) -> bool:
        return self._path(key).exists()

    def load(self, key: str, default: Any = None) -> Any:
        path = self._path(key)
        if not path.exists():
            return default
        try:
            with open(path, encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"Unreadable snapshot {path.name}: {e}")
            return default

    def save(self, key: str, data: Any) -> None:
        with open(self._path(key), "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)

    def remove(self, key: str) -> None:
        path = self._path(key)
        if path.exists():
            path.unlink()

    # ---------- typed collections ----------

    def load_posts(self) -> List[Post]:
        data = self.load(POSTS)
        if data is None:
            return list(INITIAL_POSTS)
        return [Post.from_dict(p) for p in data]

    def save_posts(self, posts: List[Post]) -> None:
        self.save(POSTS, [p.to_dict() for p in posts])

    def load_deleted_posts(self) -> List[Post]:
        return [Post.from_dict(p) for p in self.load(DELETED_POSTS, [])]

    def save_deleted_posts(self, posts: List[Post]) -> None:
        self.save(DELETED_POSTS, [p.to_dict() for p in posts])

    def load_members(self) -> List[Member]:
        return [Member.from_dict(m) for m in self.load(MEMBERS, [])]

    def save_members(self, members: List[Member]) -> None:
        self.save(MEMBERS, [m.to_dict() for m in members])

    def load_settings(self) -> Optional[SiteSettings]:
        data = self.load(SETTINGS)
        return SiteSettings.from_dict(data) if data is not None else None

    def save_settings(self, settings: SiteSettings) -> None:
        self.save(SETTINGS, settings.to_dict())

# ExpenseApp/app/services/local_mirror.py
"""Last-known copies of the suppliers / entries / users lists, read only when the store is unreachable."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional

from flask_caching import Cache

import ExpenseApp.app.common as common
from ExpenseApp.app import app

SLOTS = ("suppliers", "entries", "users")

ALL_SCOPE = "all"

MIRROR_CACHE_CONFIG = {
    "CACHE_TYPE": common.get_setting("MIRROR_CACHE_TYPE", "FileSystemCache"),
    "CACHE_DIR": common.get_setting("MIRROR_CACHE_DIR"),
    "CACHE_DEFAULT_TIMEOUT": 0,  # never expire; the mirror is replaced, not aged out
    "CACHE_KEY_PREFIX": "mirror:",
}

cache = Cache(app, config=MIRROR_CACHE_CONFIG)


@dataclass
class MirrorSnapshot:
    items: List[Dict[str, Any]]
    scope: str
    saved_at: str
    stale: bool


class LocalMirror:

    def __init__(self, backend: Cache = cache):
        self.backend = backend

    @staticmethod
    def _check(slot: str) -> None:
        if slot not in SLOTS:
            raise KeyError(f"Unknown mirror slot {slot!r}")

    def save(self, slot: str, items: List[Dict[str, Any]], scope: str = ALL_SCOPE) -> None:
        self._check(slot)
        self.backend.set(slot, {
            "items": list(items),
            "scope": scope,
            "saved_at": datetime.utcnow().isoformat(timespec="seconds"),
            "stale": False,
        })
        common.logger.debug(f"Mirror {slot} ({scope}) refreshed with {len(items)} items")

    def load(self, slot: str) -> Optional[MirrorSnapshot]:
        self._check(slot)
        data = self.backend.get(slot)
        if not data:
            return None
        return MirrorSnapshot(
            items=list(data.get("items", [])),
            scope=data.get("scope", ALL_SCOPE),
            saved_at=data.get("saved_at", ""),
            stale=bool(data.get("stale")),
        )

    def mark_stale(self, slot: str) -> None:
        self._check(slot)
        data = self.backend.get(slot)
        if not data:
            return
        data["stale"] = True
        self.backend.set(slot, data)
        common.logger.info(f"Mirror {slot} marked stale")

    def clear(self) -> None:
        for slot in SLOTS:
            self.backend.delete(slot)

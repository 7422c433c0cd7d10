"""
Per-run translation of WordPress identifiers into target store ids.

One table per entity kind.  Keys are whatever the WXR file uses to refer
to an entity of that kind:

========== ===================================================
kind       source key
========== ===================================================
author     login (``dc:creator`` on items)
category   nicename
tag        slug; the "target id" is the tag's display name
media      attachment post id (``_thumbnail_id`` meta)
post       post id
page       post id
comment    comment id
========== ===================================================

Tables are append-only for the lifetime of a run and never persisted.
A missing key resolves to ``None``; callers decide the fallback.
"""

from __future__ import annotations

import threading
from typing import Dict, Optional

KINDS = ("author", "category", "tag", "media", "post", "page", "comment")


class IdentifierResolver:
    def __init__(self, default_author_id: Optional[str] = None) -> None:
        self.default_author_id = default_author_id
        self._tables: Dict[str, Dict[str, str]] = {kind: {} for kind in KINDS}
        self._lock = threading.Lock()

    def record(self, kind: str, source_key: str, target_id: str) -> None:
        if not source_key:
            return
        with self._lock:
            self._tables[kind][str(source_key)] = target_id

    def resolve(self, kind: str, source_key: Optional[str]) -> Optional[str]:
        if not source_key:
            return None
        with self._lock:
            return self._tables[kind].get(str(source_key))

    def size(self, kind: str) -> int:
        with self._lock:
            return len(self._tables[kind])

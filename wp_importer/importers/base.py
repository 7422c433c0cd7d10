"""
Common import loop shared by every entity kind.

For each record the importer looks for an entity already created from
the same natural key.  An existing entity is never modified: its id is
recorded and the record counts as ``skipped``.  Otherwise the creation
payload is built with resolved references and sent to the store.  Any
exception raised while handling one record is reported and counted as
``failed``; the loop moves on to the next record.
"""

from __future__ import annotations

import threading
from typing import Iterable, List, Optional

from ..migrators.content_store import ContentStore
from ..models.job import ImportStats
from ..resolver import IdentifierResolver
from ..utils.errors import ImportCancelled, report_error, report_ok


class CancellationToken:
    """Cooperative cancellation flag checked between records."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ImportCancelled("Import cancelled by user")


class RecordImporter:
    #: key in :class:`ImportStats`
    stats_kind = ""
    #: table in :class:`IdentifierResolver`
    map_kind = ""
    #: store collection entities are created in
    collection = ""
    #: natural key field looked up in the store, ``None`` disables the lookup
    lookup_field: Optional[str] = None
    error_code = ""

    def __init__(
        self,
        store: ContentStore,
        resolver: IdentifierResolver,
        stats: ImportStats,
        token: Optional[CancellationToken] = None,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.stats = stats
        self.token = token or CancellationToken()

    def select(self, records: Iterable) -> List:
        """Records counted in ``total``."""
        return list(records)

    def should_skip(self, record) -> bool:
        """Records counted as ``skipped`` without any store call."""
        return False

    def find_existing(self, record) -> Optional[str]:
        if self.lookup_field is None:
            return None
        return self.store.find(self.collection, self.lookup_field, record.natural_key())

    def create(self, record) -> str:
        return self.store.create(self.collection, record.to_create_payload(self.resolver))

    def import_record(self, record) -> None:
        try:
            if self.should_skip(record):
                self.stats.increment(self.stats_kind, "skipped")
                return
            existing = self.find_existing(record)
            if existing:
                self.resolver.record(self.map_kind, record.source_key(), existing)
                self.stats.increment(self.stats_kind, "skipped")
                report_ok("SKIPPED", record, {"id": existing})
                return
            target_id = self.create(record)
            self.resolver.record(self.map_kind, record.source_key(), target_id)
            self.stats.increment(self.stats_kind, "imported")
            report_ok("IMPORTED", record, {"id": target_id})
        except ImportCancelled:
            raise
        except Exception as e:
            report_error(self.error_code, record, e)
            self.stats.increment(self.stats_kind, "failed")

    def run(self, records: Iterable) -> None:
        selected = self.select(records)
        self.stats.set_total(self.stats_kind, len(selected))
        for record in selected:
            self.token.raise_if_cancelled()
            self.import_record(record)

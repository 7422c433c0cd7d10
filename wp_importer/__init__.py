"""
Top-level package for the WordPress (WXR) content importer.

This package bundles all components required to read a WordPress export
file and recreate its authors, categories, tags, media, posts, pages and
threaded comments inside another content store.  Modules are split into
subpackages:

* :mod:`wp_importer.extractors` – WXR parsing into typed records
* :mod:`wp_importer.models` – source records, job state and statistics
* :mod:`wp_importer.importers` – per-kind importers, media pipeline, comment linker
* :mod:`wp_importer.migrators` – content store clients
* :mod:`wp_importer.utils` – errors, structured logging, text helpers

Orchestration is handled by :mod:`wp_importer.import_tool`; the
background job control surface lives in :mod:`wp_importer.status`.
"""

from .import_tool import ImportCoordinator
from .status import ImportStatusRegistry

__all__ = ["ImportCoordinator", "ImportStatusRegistry"]

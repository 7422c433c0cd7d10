"""
Error types and structured logging helpers for the WordPress import.

The exception classes defined here form the taxonomy used across the
pipeline:

``ParseError``
    The WXR file is malformed.  Fatal, aborts the whole run.
``RecordError``
    A single record could not be created (validation, storage or network
    failure).  Isolated by the importers, counted as ``failed``.
``ConflictError``
    An import is already in progress.
``NotFoundError``
    Cancel was requested but no import is running.
``ImportCancelled``
    Raised inside a run once the cancellation token has been set.
``PreFlightCheckError``
    The environment is not ready for an import (missing source file,
    unwritable upload directory).

The module also centralizes the writing of log entries for both failed and
successful record operations.  Each entry is appended to a JSON Lines file
under the report directory (``reports/import`` unless reconfigured with
:func:`configure_reports`) so that the information can be reviewed after a
run.
"""

from __future__ import annotations

import json
import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class WPImportError(Exception):
    """Base class for every error raised by the importer."""


class ParseError(WPImportError):
    """The source file is not a readable WXR document."""


class RecordError(WPImportError):
    """A single record could not be imported."""


class ConflictError(WPImportError):
    """An import is already in progress."""


class NotFoundError(WPImportError):
    """No import is in progress."""


class ImportCancelled(WPImportError):
    """The running import observed its cancellation token."""


class PreFlightCheckError(WPImportError):
    """Custom exception for pre-flight check failures."""
    pass


# Mapping of event codes used throughout the import to descriptive messages.
# The keys include both error and success codes as the same lookup is used by
# :func:`report_error` and :func:`report_ok`.
ERRORS: Dict[str, str] = {
    "AUTHOR_IMPORT": "Error importing WordPress author",
    "CATEGORY_IMPORT": "Error importing WordPress category",
    "TAG_IMPORT": "Error processing WordPress tag",
    "MEDIA_IMPORT": "Error importing WordPress media",
    "MEDIA_DERIVATIVES": "Error processing image derivatives",
    "POST_IMPORT": "Error importing WordPress post",
    "PAGE_IMPORT": "Error importing WordPress page",
    "COMMENT_IMPORT": "Error importing WordPress comment",
    "COMMENT_LINK": "Error setting comment parent relationship",
    "SOURCE_CLEANUP": "Error deleting WordPress XML file",
    "IMPORTED": "Record imported",
    "SKIPPED": "Record already exists",
}

_REPORT_DIR = os.path.join("reports", "import")
_write_lock = threading.Lock()


def configure_reports(report_dir: str) -> None:
    """Point all subsequent log entries at ``report_dir``."""
    global _REPORT_DIR
    _REPORT_DIR = report_dir


def _write_jsonl(name: str, data: Dict[str, Any]) -> None:
    """Append ``data`` as a JSON object followed by a newline to ``name``."""
    with _write_lock:
        os.makedirs(_REPORT_DIR, exist_ok=True)
        with open(os.path.join(_REPORT_DIR, name), "a", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, default=str)
            f.write("\n")


def log_message(message: str, level: str = "INFO") -> None:
    """Print ``message`` and append it to ``import.log``."""
    print(f"[{level}] {message}")
    with _write_lock:
        os.makedirs(_REPORT_DIR, exist_ok=True)
        with open(os.path.join(_REPORT_DIR, "import.log"), "a", encoding="utf-8") as f:
            f.write(f"{datetime.now(timezone.utc).isoformat()} {level}: {message}\n")


def _entry(code: str, record: Any) -> Dict[str, Any]:
    return {
        "code": code,
        "message": ERRORS.get(code, code),
        "kind": getattr(record, "kind", None),
        "source_id": getattr(record, "source_key", lambda: None)() if record is not None else None,
        "label": getattr(record, "label", lambda: None)() if record is not None else None,
    }


def report_error(code: str, record: Any, exc: Optional[BaseException] = None) -> None:
    """Log an error event for ``record``.

    Parameters
    ----------
    code:
        A key identifying the type of error.  If ``code`` is present in
        :data:`ERRORS` its value will be used as the message.
    record:
        The source record associated with the error, or ``None`` for
        run-level events.  Its kind, source key and label are logged.
    exc:
        Optional exception instance that triggered the error.  The string
        representation of the exception will be included in the log entry.
    """
    entry = _entry(code, record)
    if exc is not None:
        entry["error"] = str(exc)
    print(f"[ERROR] {entry['message']} - {entry['label'] or ''}")
    _write_jsonl("errors.jsonl", entry)


def report_ok(code: str, record: Any, extra: Optional[Dict[str, Any]] = None) -> None:
    """Log a successful event for ``record``.

    ``extra`` is merged into the log entry, typically with the target id.
    """
    entry = _entry(code, record)
    if extra:
        entry.update(extra)
    print(f"[OK] {entry['message']} - {entry['label'] or ''}")
    _write_jsonl("success.jsonl", entry)

"""
Utility helpers used by the importer.

This subpackage exposes the error taxonomy, structured logging, text
normalization and pre-flight checks.
"""

from .errors import (
    ERRORS,
    ConflictError,
    ImportCancelled,
    NotFoundError,
    ParseError,
    PreFlightCheckError,
    RecordError,
    WPImportError,
    configure_reports,
    log_message,
    report_error,
    report_ok,
)
from .text import make_excerpt, normalize_label, slugify

__all__ = [
    "ERRORS",
    "ConflictError",
    "ImportCancelled",
    "NotFoundError",
    "ParseError",
    "PreFlightCheckError",
    "RecordError",
    "WPImportError",
    "configure_reports",
    "log_message",
    "report_error",
    "report_ok",
    "make_excerpt",
    "normalize_label",
    "slugify",
]

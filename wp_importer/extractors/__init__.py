"""
Extractors for WordPress export files.

This subpackage parses WXR (WordPress eXtended RSS) exports into the
typed records of :mod:`wp_importer.models.records`, making it easier for
the importers to resolve cross references and build creation payloads.
"""

from .wxr_extractor import WXRDocument, load_document, text

__all__ = ["WXRDocument", "load_document", "text"]

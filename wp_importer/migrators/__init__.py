"""
Target content store helpers.

This subpackage provides the boundary to the content store the import
writes into: a REST client with rate limiting and automatic retries, and
an in-memory store for dry runs.
"""

from .content_store import ContentStore, InMemoryContentStore, RestContentStore

__all__ = ["ContentStore", "InMemoryContentStore", "RestContentStore"]

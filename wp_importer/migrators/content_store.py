"""
Content store helpers for the WordPress import.

The importer never owns the target schema: it looks entities up by a
natural key, asks the store to create them and, for threaded comments,
updates the ``parent`` field afterwards.  :class:`ContentStore` captures
that boundary with three calls over the collections ``users``,
``categories``, ``media``, ``posts`` and ``comments``.

Two implementations are provided:

* :class:`RestContentStore` talks JSON over HTTP with the target CMS.  A
  shared rate limiter keeps the request rate under ``store.rpm`` and
  transient failures (429/5xx, connection errors) are retried.
* :class:`InMemoryContentStore` keeps entities in dictionaries.  It backs
  dry runs and the test-suite.

Usage example::

    store = RestContentStore(config["store"])
    user_id = store.find("users", "email", "jane@example.com")
    if user_id is None:
        user_id = store.create("users", {"name": "Jane", "email": "jane@example.com"})
"""

from __future__ import annotations

import itertools
import threading
from typing import Any, Dict, List, Optional

import requests

from ..utils.errors import RecordError
from .http import RateLimiter, with_retries

COLLECTIONS = ("users", "categories", "media", "posts", "comments")

_SINGULAR = {
    "users": "user",
    "categories": "category",
    "media": "media",
    "posts": "post",
    "comments": "comment",
}


class ContentStore:
    """Opaque target store: look up, create and update entities by id."""

    def find(self, collection: str, field: str, value: Any) -> Optional[str]:
        """Return the id of the first entity whose ``field`` equals ``value``."""
        raise NotImplementedError

    def create(self, collection: str, payload: Dict[str, Any]) -> str:
        """Create an entity and return its id.  Raises on validation errors."""
        raise NotImplementedError

    def update(self, collection: str, entity_id: str, changes: Dict[str, Any]) -> None:
        raise NotImplementedError


###############################################################################
# REST implementation
###############################################################################

def store_headers(cfg: Dict[str, Any]) -> Dict[str, str]:
    """
    Construct the default headers required for content store requests.

    :param cfg: The ``store`` configuration section with the ``access_token``.
    :return: A dictionary of headers including Authorization when a token is set.
    """
    headers = {"Accept": "application/json"}
    if cfg.get("access_token"):
        headers["Authorization"] = f"Bearer {cfg['access_token']}"
    return headers


def _entity_id(entity: Any) -> Optional[str]:
    if not isinstance(entity, dict):
        return None
    value = entity.get("id") or entity.get("_id")
    return str(value) if value is not None else None


def _unwrap(body: Any, key: str) -> Any:
    # Accept both bare payloads and the {"status": ..., "data": {key: ...}} envelope
    if isinstance(body, dict) and "data" in body:
        body = body["data"]
    if isinstance(body, dict) and key in body:
        body = body[key]
    return body


class RestContentStore(ContentStore):
    """
    JSON/HTTP client for the target content store.

    ``find`` issues ``GET {base_url}/{collection}?{field}={value}&limit=1``,
    ``create`` issues ``POST {base_url}/{collection}`` and ``update`` issues
    ``PATCH {base_url}/{collection}/{id}``.
    """

    def __init__(self, cfg: Dict[str, Any], session: Optional[requests.Session] = None) -> None:
        self.cfg = cfg
        self.base_url = cfg["base_url"].rstrip("/")
        self.timeout = cfg.get("timeout", 10)
        self.session = session or requests.Session()
        self._limiter = RateLimiter(cfg.get("rpm", 200))

    def _url(self, collection: str, entity_id: Optional[str] = None) -> str:
        if collection not in COLLECTIONS:
            raise ValueError(f"Unknown collection: {collection}")
        url = f"{self.base_url}/{collection}"
        return f"{url}/{entity_id}" if entity_id else url

    def find(self, collection: str, field: str, value: Any) -> Optional[str]:
        self._limiter.wait()
        def do_request() -> requests.Response:
            return self.session.get(
                self._url(collection),
                headers=store_headers(self.cfg),
                params={field: value, "limit": 1},
                timeout=self.timeout,
            )
        try:
            resp = with_retries(do_request)
        except requests.RequestException as e:
            raise RecordError(f"Lookup of {collection} by {field} failed: {e}") from e
        found = _unwrap(resp.json(), collection)
        if isinstance(found, list):
            return _entity_id(found[0]) if found else None
        return _entity_id(found)

    def create(self, collection: str, payload: Dict[str, Any]) -> str:
        self._limiter.wait()
        def do_request() -> requests.Response:
            return self.session.post(
                self._url(collection),
                headers={**store_headers(self.cfg), "Content-Type": "application/json"},
                json=payload,
                timeout=self.timeout,
            )
        try:
            resp = with_retries(do_request)
        except requests.HTTPError as e:
            details = e.response.text if e.response is not None else str(e)
            raise RecordError(f"Creating {_SINGULAR[collection]} failed: {details}") from e
        except requests.RequestException as e:
            raise RecordError(f"Network error creating {_SINGULAR[collection]}: {e}") from e
        entity_id = _entity_id(_unwrap(resp.json(), _SINGULAR[collection]))
        if not entity_id:
            raise RecordError(f"Creating {_SINGULAR[collection]} did not return an ID.")
        return entity_id

    def update(self, collection: str, entity_id: str, changes: Dict[str, Any]) -> None:
        self._limiter.wait()
        def do_request() -> requests.Response:
            return self.session.patch(
                self._url(collection, entity_id),
                headers={**store_headers(self.cfg), "Content-Type": "application/json"},
                json=changes,
                timeout=self.timeout,
            )
        try:
            with_retries(do_request)
        except requests.RequestException as e:
            raise RecordError(f"Updating {_SINGULAR[collection]} {entity_id} failed: {e}") from e


###############################################################################
# In-memory implementation
###############################################################################

class InMemoryContentStore(ContentStore):
    """Dictionary-backed store used for dry runs and tests."""

    def __init__(self) -> None:
        self.entities: Dict[str, Dict[str, Dict[str, Any]]] = {name: {} for name in COLLECTIONS}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def find(self, collection: str, field: str, value: Any) -> Optional[str]:
        with self._lock:
            for entity_id, entity in self.entities[collection].items():
                if entity.get(field) == value:
                    return entity_id
        return None

    def create(self, collection: str, payload: Dict[str, Any]) -> str:
        with self._lock:
            entity_id = f"{_SINGULAR[collection]}-{next(self._ids)}"
            self.entities[collection][entity_id] = {**payload, "id": entity_id}
        return entity_id

    def update(self, collection: str, entity_id: str, changes: Dict[str, Any]) -> None:
        with self._lock:
            if entity_id not in self.entities[collection]:
                raise RecordError(f"{_SINGULAR[collection]} {entity_id} does not exist")
            self.entities[collection][entity_id].update(changes)

    def get(self, collection: str, entity_id: str) -> Optional[Dict[str, Any]]:
        return self.entities[collection].get(entity_id)

    def all(self, collection: str) -> List[Dict[str, Any]]:
        return list(self.entities[collection].values())

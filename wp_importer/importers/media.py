"""
Media import: download WordPress attachments and register them as assets.

Only images are imported.  Each image is streamed to
``<upload_root>/wp-import/``, probed with Pillow and resized into three
derivatives (``small``, ``medium`` and ``large``) that are never wider
than the source.  The asset record sent to the store carries the public
URLs of the file and its derivatives.

Downloads use an explicit timeout, bounded retries with exponential
backoff and a rate limiter shared by every worker.  A partially written
file is removed whatever the failure.  Records are processed on a small
thread pool; two attachments sharing a file name are serialized so the
asset is created once.
"""

from __future__ import annotations

import os
import threading
import time
from collections import defaultdict
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Dict, Iterable, List, Optional

import requests
from PIL import Image, UnidentifiedImageError
from pydantic import BaseModel, ConfigDict, Field

from ..migrators.http import RateLimiter, with_retries
from ..utils.errors import ImportCancelled, RecordError, log_message, report_error
from .base import RecordImporter

THUMBNAIL_SIZES: Dict[str, int] = {
    "small": 300,
    "medium": 600,
    "large": 1200,
}

CHUNK_SIZE = 64 * 1024

# Probe or resize failures that leave the original usable.  KeyError comes
# from saving formats Pillow can read but not write (PSD, CUR).
DERIVATIVE_ERRORS = (
    UnidentifiedImageError,
    Image.DecompressionBombError,
    OSError,
    ValueError,
    KeyError,
)


class MediaAsset(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    file_name: str = Field(..., alias="fileName")
    original_name: str = Field(..., alias="originalName")
    mime_type: str = Field(..., alias="mimeType")
    size: int = 0
    url: str
    dimensions: Dict[str, int] = Field(default_factory=dict)
    thumbnails: Dict[str, str] = Field(default_factory=dict)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class MediaPipeline:
    """Download, probe and resize one remote image."""

    def __init__(
        self,
        media_dir: str,
        public_prefix: str,
        *,
        session: Optional[requests.Session] = None,
        timeout: float = 30,
        max_attempts: int = 3,
        base_delay: float = 0.7,
        rpm: int = 120,
        sleep_fn: Callable[[float], None] = time.sleep,
    ) -> None:
        self.media_dir = media_dir
        self.public_prefix = public_prefix.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.sleep_fn = sleep_fn
        self._limiter = RateLimiter(rpm)

    def public_url(self, filename: str) -> str:
        return f"{self.public_prefix}/{os.path.basename(self.media_dir)}/{filename}"

    def _discard(self, path: str) -> None:
        try:
            os.remove(path)
        except FileNotFoundError:
            pass

    def download(self, url: str, filename: str) -> str:
        """Stream ``url`` into the media directory and return the local path."""
        os.makedirs(self.media_dir, exist_ok=True)
        path = os.path.join(self.media_dir, filename)
        if os.path.dirname(os.path.realpath(path)) != os.path.realpath(self.media_dir):
            raise RecordError(f"Refusing to write {filename!r} outside {self.media_dir}")

        self._limiter.wait()
        def do_request() -> requests.Response:
            return self.session.get(url, stream=True, timeout=self.timeout)
        try:
            resp = with_retries(
                do_request,
                max_attempts=self.max_attempts,
                base_delay=self.base_delay,
                sleep_fn=self.sleep_fn,
            )
        except requests.RequestException as e:
            raise RecordError(f"Could not download {url}: {e}") from e

        try:
            with resp, open(path, "wb") as f:
                for chunk in resp.iter_content(chunk_size=CHUNK_SIZE):
                    if chunk:
                        f.write(chunk)
        except (requests.RequestException, OSError) as e:
            self._discard(path)
            raise RecordError(f"Transfer of {url} interrupted: {e}") from e
        except Exception:
            self._discard(path)
            raise
        return path

    def make_derivatives(self, path: str, filename: str):
        """Return ``(dimensions, thumbnails)`` for the image at ``path``."""
        thumbnails: Dict[str, str] = {}
        with Image.open(path) as image:
            image_format = image.format
            dimensions = {"width": image.width, "height": image.height}
            for size, width in THUMBNAIL_SIZES.items():
                thumb = image.copy()
                if thumb.width > width:
                    height = max(1, round(thumb.height * width / thumb.width))
                    thumb = thumb.resize((width, height), Image.Resampling.LANCZOS)
                if image_format == "JPEG" and thumb.mode not in ("RGB", "L"):
                    thumb = thumb.convert("RGB")
                thumb_name = f"thumb_{size}_{filename}"
                thumb.save(os.path.join(self.media_dir, thumb_name), format=image_format)
                thumbnails[size] = self.public_url(thumb_name)
        return dimensions, thumbnails

    def process(self, record) -> MediaAsset:
        filename = record.natural_key()
        if not filename:
            raise RecordError(f"Cannot derive a file name from {record.url}")
        path = self.download(record.url, filename)

        try:
            dimensions: Dict[str, int] = {}
            thumbnails: Dict[str, str] = {}
            try:
                dimensions, thumbnails = self.make_derivatives(path, filename)
            except DERIVATIVE_ERRORS as e:
                # The original file is kept, the asset just has no derivatives
                self._discard_thumbnails(filename)
                report_error("MEDIA_DERIVATIVES", record, e)

            return MediaAsset(
                file_name=filename,
                original_name=filename,
                mime_type=record.effective_mime_type,
                size=os.path.getsize(path),
                url=self.public_url(filename),
                dimensions=dimensions,
                thumbnails=thumbnails,
            )
        except Exception:
            self._discard(path)
            self._discard_thumbnails(filename)
            raise

    def _discard_thumbnails(self, filename: str) -> None:
        for size in THUMBNAIL_SIZES:
            self._discard(os.path.join(self.media_dir, f"thumb_{size}_{filename}"))

    def discard(self, asset: MediaAsset) -> None:
        """Remove the files written for ``asset``."""
        self._discard(os.path.join(self.media_dir, asset.file_name))
        self._discard_thumbnails(asset.file_name)


class MediaImporter(RecordImporter):
    stats_kind = "media"
    map_kind = "media"
    collection = "media"
    lookup_field = "originalName"
    error_code = "MEDIA_IMPORT"

    def __init__(self, store, resolver, stats, token=None, *, pipeline: MediaPipeline, max_workers: int = 4, dry_run: bool = False) -> None:
        super().__init__(store, resolver, stats, token)
        self.pipeline = pipeline
        self.max_workers = max(1, max_workers)
        self.dry_run = dry_run
        self._key_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        self._key_locks_guard = threading.Lock()

    def select(self, records: Iterable) -> List:
        return [record for record in records if record.url]

    def should_skip(self, record) -> bool:
        return not record.is_image()

    def find_existing(self, record) -> Optional[str]:
        if not record.natural_key():
            raise RecordError(f"Cannot derive a file name from {record.url}")
        return super().find_existing(record)

    def create(self, record) -> str:
        payload = record.to_create_payload(self.resolver)
        if self.dry_run:
            log_message(f"Dry-run: would download {record.url}")
            name = record.natural_key()
            payload.update({"fileName": name, "originalName": name, "url": record.url})
            return self.store.create(self.collection, payload)

        asset = self.pipeline.process(record)
        payload.update(asset.to_payload())
        try:
            return self.store.create(self.collection, payload)
        except Exception:
            self.pipeline.discard(asset)
            raise

    def _lock_for(self, key: str) -> threading.Lock:
        with self._key_locks_guard:
            return self._key_locks[key]

    def _import_one(self, record) -> None:
        self.token.raise_if_cancelled()
        with self._lock_for(record.natural_key()):
            self.import_record(record)

    def run(self, records: Iterable) -> None:
        selected = self.select(records)
        self.stats.set_total(self.stats_kind, len(selected))
        if not selected:
            return
        with ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="wp-media") as pool:
            futures = [pool.submit(self._import_one, record) for record in selected]
            try:
                for future in as_completed(futures):
                    future.result()
            except ImportCancelled:
                for future in futures:
                    future.cancel()
                raise

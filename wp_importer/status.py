"""
Control surface for background imports: begin, status, cancel, preview.

:class:`ImportStatusRegistry` admits at most one running import.  The
run itself executes on a worker thread; ``begin`` returns as soon as the
job is submitted and callers poll :meth:`ImportStatusRegistry.status`
for progress and the terminal outcome.

Cancellation sets the run's token, which importers check between
records.  The job is marked ``cancelled`` immediately and the run's own
completion never overwrites that status.
"""

from __future__ import annotations

import os
import threading
from concurrent.futures import CancelledError, Future, ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

import requests

from .extractors.wxr_extractor import load_document
from .import_tool import ImportCoordinator
from .importers.base import CancellationToken
from .migrators.content_store import ContentStore, InMemoryContentStore, RestContentStore
from .models.job import ImportJob
from .utils.errors import ConflictError, NotFoundError, configure_reports, log_message
from .utils.pre_flight_checks import run_pre_flight_checks

CANCEL_MESSAGE = "Import cancelled by user"
CONFLICT_MESSAGE = "An import is already in progress. Please wait or cancel the current import."


def _now() -> datetime:
    return datetime.now(timezone.utc)


def default_store_factory(config: Dict[str, Any]) -> ContentStore:
    if config["import"]["dry_run"]:
        return InMemoryContentStore()
    return RestContentStore(config["store"])


class ImportStatusRegistry:
    def __init__(
        self,
        config: Dict[str, Any],
        store_factory: Callable[[Dict[str, Any]], ContentStore] = default_store_factory,
        *,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.config = config
        configure_reports(config["import"]["report_dir"])
        self.store_factory = store_factory
        self.session = session
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="wp-import")
        self._lock = threading.Lock()
        self._job: Optional[ImportJob] = None
        self._token: Optional[CancellationToken] = None
        self._done: Optional[threading.Event] = None

    def begin(self, file_path: str, initiator: str, options: Optional[Dict[str, bool]] = None) -> Dict[str, Any]:
        """
        Start importing ``file_path`` in the background.

        :raises ConflictError: if an import is already in progress.
        :raises PreFlightCheckError: if the file or the upload root is unusable.
        :return: Snapshot of the new job.
        """
        with self._lock:
            if self._job is not None and self._job.in_progress:
                raise ConflictError(CONFLICT_MESSAGE)
            run_pre_flight_checks(self.config, file_path)

            coordinator = ImportCoordinator(
                file_path,
                self.config,
                self.store_factory(self.config),
                options=options,
                session=self.session,
            )
            job = ImportJob(
                in_progress=True,
                status="running",
                started_at=_now(),
                initiator=initiator,
                file_name=os.path.basename(file_path),
                stats=coordinator.stats,
            )
            token = CancellationToken()
            done = threading.Event()
            self._job, self._token, self._done = job, token, done
            future = self._executor.submit(coordinator.run, initiator, token)
            snapshot = job.snapshot()

        # Outside the lock: the callback runs inline if the future already finished
        future.add_done_callback(lambda f: self._finish(job.job_id, done, f))
        log_message(f"WordPress import started by {initiator} ({job.file_name})")
        return snapshot

    def _finish(self, job_id: str, done: threading.Event, future: Future) -> None:
        try:
            with self._lock:
                job = self._job
                if job is None or job.job_id != job_id:
                    return
                if job.status == "cancelled":
                    log_message(f"Cancelled WordPress import {job_id} has stopped")
                    return

                job.in_progress = False
                job.ended_at = _now()
                try:
                    result = future.result()
                except CancelledError:
                    job.status = "cancelled"
                    job.error = CANCEL_MESSAGE
                    return
                except Exception as e:
                    job.status = "error"
                    job.error = f"Import crashed: {e}"
                    log_message(f"WordPress import failed with exception: {e}", level="ERROR")
                    return

                job.status = result.status
                job.error = result.message if result.status != "success" else None
                if result.status == "success":
                    log_message(f"WordPress import completed: {result.stats}")
                else:
                    log_message(f"WordPress import ended with {result.status}: {result.message}", level="ERROR")
        finally:
            done.set()

    def status(self) -> Dict[str, Any]:
        with self._lock:
            if self._job is None:
                return ImportJob().snapshot()
            return self._job.snapshot()

    def cancel(self, initiator: str) -> Dict[str, Any]:
        """
        Ask the running import to stop.  Advisory: the record being
        processed is finished first.

        :raises NotFoundError: if no import is in progress.
        """
        with self._lock:
            job = self._job
            if job is None or not job.in_progress:
                raise NotFoundError("No import in progress")
            self._token.cancel()
            job.in_progress = False
            job.ended_at = _now()
            job.status = "cancelled"
            job.error = CANCEL_MESSAGE
            snapshot = job.snapshot()
        log_message(f"WordPress import cancelled by {initiator}")
        return snapshot

    def preview(self, file_path: str) -> Dict[str, Any]:
        """Per-kind counts of ``file_path``; nothing is created or deleted."""
        with self._lock:
            if self._job is not None and self._job.in_progress:
                raise ConflictError(CONFLICT_MESSAGE)
        return load_document(file_path).preview()

    def wait(self, timeout: Optional[float] = None) -> Dict[str, Any]:
        """Block until the current job's run has finished, then return its snapshot."""
        done = self._done
        if done is not None:
            done.wait(timeout)
        return self.status()

    def shutdown(self) -> None:
        self._executor.shutdown(wait=True)

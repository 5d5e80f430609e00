"""
Background worker for print jobs.

This module owns:
- A thread-backed queue of job ids
- The retry policy applied when the processor re-raises a failure
- Helpers to enqueue ids, pick up queued records, start the worker, and
  query its status

The processor itself never retries; a retry here is a new pickup of the same
job id after an exponential backoff.
"""

from __future__ import annotations

import logging
import queue
import threading
from typing import Any, Dict, Optional, Set

from .config import MAX_ATTEMPTS, RETRY_BASE_SECONDS
from .errors import InvalidTransitionError, JobNotFoundError
from .models import JobStatus
from .processor import PrintJobProcessor

logger = logging.getLogger(__name__)


class PrintWorker:
    """Single-thread queue consumer driving a PrintJobProcessor."""

    def __init__(
        self,
        processor: PrintJobProcessor,
        max_attempts: Optional[int] = None,
        retry_base_seconds: Optional[float] = None,
    ):
        self.processor = processor
        self.max_attempts = max(1, MAX_ATTEMPTS if max_attempts is None else max_attempts)
        self.retry_base_seconds = RETRY_BASE_SECONDS if retry_base_seconds is None else retry_base_seconds
        self.queue: queue.Queue[str] = queue.Queue()
        self.thread: Optional[threading.Thread] = None
        self._pending_retries = 0
        self._in_queue: Set[str] = set()
        self._lock = threading.Lock()

    def enqueue(self, job_id: str) -> str:
        """Queue a job id for processing. Returns the id."""
        job_id = str(job_id)
        with self._lock:
            self._in_queue.add(job_id)
        self.queue.put(job_id)
        logger.info(f'Enqueued job {job_id} (queue_size={self.queue.qsize()})')
        return job_id

    def enqueue_pending(self) -> int:
        """
        Queue every stored ``queued`` job that is not already waiting here,
        oldest first. Returns how many ids were added.
        """
        with self._lock:
            waiting = set(self._in_queue)
        added = 0
        for job in reversed(self.processor.jobs.list(JobStatus.QUEUED.value)):
            if job.id not in waiting:
                self.enqueue(job.id)
                added += 1
        return added

    def _schedule_retry(self, job_id: str, attempt: int):
        delay = self.retry_base_seconds * (2 ** (attempt - 1))
        logger.info(f'Retrying job {job_id} in {delay:.1f}s (attempt {attempt + 1}/{self.max_attempts})')
        if delay <= 0:
            self.enqueue(job_id)
            return

        def _requeue():
            self.enqueue(job_id)
            with self._lock:
                self._pending_retries -= 1

        with self._lock:
            self._pending_retries += 1
        timer = threading.Timer(delay, _requeue)
        timer.daemon = True
        timer.start()

    def handle(self, job_id: str) -> None:
        """Process one job id, applying the retry policy. Never raises."""
        with self._lock:
            self._in_queue.discard(job_id)
        try:
            self.processor.process(job_id)
        except (JobNotFoundError, InvalidTransitionError) as e:
            logger.error(f'Job {job_id} dropped: {e}')
        except Exception as e:
            job = self.processor.jobs.get(job_id)
            attempt = job.attempts if job else self.max_attempts
            if attempt < self.max_attempts:
                self._schedule_retry(job_id, attempt)
            else:
                logger.error(f'Job {job_id} failed after {attempt} attempt(s): {e}')

    def drain(self) -> int:
        """Process queued ids in the calling thread until the queue is empty."""
        handled = 0
        while True:
            try:
                job_id = self.queue.get_nowait()
            except queue.Empty:
                return handled
            try:
                self.handle(job_id)
                handled += 1
            finally:
                self.queue.task_done()

    def _run(self) -> None:
        while True:
            job_id = self.queue.get()
            try:
                self.handle(job_id)
            finally:
                self.queue.task_done()

    def ensure_worker(self) -> None:
        """Start the background thread (idempotent)."""
        if self.thread and self.thread.is_alive():
            return
        self.thread = threading.Thread(target=self._run, daemon=True, name='label-print-worker')
        self.thread.start()
        logger.info('Background print worker started')

    def worker_status(self) -> Dict[str, Any]:
        """Return basic worker/queue status."""
        with self._lock:
            pending = self._pending_retries
        return {
            'worker_alive': bool(self.thread) and self.thread.is_alive(),
            'queue_size': self.queue.qsize(),
            'pending_retries': pending,
            'max_attempts': self.max_attempts,
        }

"""
Stores
======

JSON-file backed registries for print jobs and printers.

The file is the source of truth: reads reload it, and every change is made
under an exclusive lock on ``<file>.lock`` as reload, merge by id, then an
atomic rewrite (temp file + os.replace). Several processes (a CLI enqueue
and a long-running worker) can share one file without losing records.
A store created with ``path=None`` never touches disk.
"""

import contextlib
import fcntl
import json
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Dict, Generic, Iterator, List, Mapping, Optional, Sequence, Type, TypeVar

from .config import DEFAULT_ORG_ID
from .errors import JobNotFoundError
from .models import JobStatus, Printer, PrintJob

logger = logging.getLogger(__name__)

T = TypeVar('T', PrintJob, Printer)


@contextlib.contextmanager
def file_lock(path: Path) -> Iterator[None]:
    """Exclusive lock serializing writers of ``path`` across processes."""
    lock_path = path.with_suffix(path.suffix + '.lock')
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with open(lock_path, 'w', encoding='utf-8') as fh:
        fcntl.flock(fh.fileno(), fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(fh.fileno(), fcntl.LOCK_UN)


class _JsonStore(Generic[T]):
    model: Type[T]

    def __init__(self, path: Optional[str] = None):
        self.path = Path(path) if path else None
        self._lock = threading.RLock()
        self._records: Dict[str, T] = {}
        self._load()

    def _load(self):
        if self.path is None or not self.path.exists():
            return
        with open(self.path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        self._records = {k: self.model.from_dict(v) for k, v in data.items()}

    def _save(self):
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump({k: v.to_dict() for k, v in self._records.items()}, f, indent=2)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, self.path)

    def _change(self, apply: Callable[[Dict[str, T]], Any]) -> Any:
        """Apply ``apply`` to the freshly loaded records and persist them."""
        with self._lock:
            if self.path is None:
                return apply(self._records)
            with file_lock(self.path):
                self._load()
                result = apply(self._records)
                self._save()
            return result

    def _snapshot(self) -> List[T]:
        with self._lock:
            self._load()
            return [self.model.from_dict(r.to_dict()) for r in self._records.values()]

    def get(self, record_id: str) -> Optional[T]:
        """Copy of the stored record, or None."""
        with self._lock:
            self._load()
            record = self._records.get(str(record_id))
            return self.model.from_dict(record.to_dict()) if record else None

    def save(self, record: T) -> T:
        copy = self.model.from_dict(record.to_dict())
        self._change(lambda records: records.__setitem__(copy.id, copy))
        return record

    def delete(self, record_id: str) -> bool:
        return self._change(lambda records: records.pop(str(record_id), None) is not None)

    def __len__(self) -> int:
        with self._lock:
            self._load()
            return len(self._records)


class PrinterStore(_JsonStore[Printer]):
    """Printer configuration registry."""

    model = Printer

    def add(self, printer: Printer) -> Printer:
        return self.save(printer)

    def list(self) -> List[Printer]:
        return sorted(self._snapshot(), key=lambda p: p.name)


class JobStore(_JsonStore[PrintJob]):
    """Print job registry (system of record for job outcome)."""

    model = PrintJob

    def create(
        self,
        entity_type: str,
        entity_ids: Sequence[Any],
        *,
        options: Optional[Mapping[str, Any]] = None,
        org_id: Optional[str] = None,
        printer_id: Optional[str] = None,
        user_id: Optional[str] = None,
        user_name: Optional[str] = None,
        copies: int = 1,
    ) -> PrintJob:
        """
        Create a queued job.

        Raises:
            ValueError: empty entity_type / entity_ids or copies < 1
        """
        if not entity_type:
            raise ValueError('The entity_type field is required')
        if not entity_ids:
            raise ValueError('The entity_ids field must be a non-empty list')
        if int(copies) < 1:
            raise ValueError('copies must be at least 1')

        job = PrintJob(
            entity_type=entity_type,
            entity_ids=list(entity_ids),
            options=dict(options or {}),
            org_id=org_id or DEFAULT_ORG_ID,
            printer_id=printer_id,
            user_id=user_id,
            user_name=user_name,
            copies=int(copies),
        )
        self.save(job)
        logger.info(f'Queued print job {job.id} ({entity_type} x{len(job.entity_ids)})')
        return job

    def load(self, job_id: str) -> PrintJob:
        """Like get(), but raises JobNotFoundError."""
        job = self.get(job_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def list(self, status: Optional[str] = None) -> List[PrintJob]:
        """Jobs, newest first, optionally filtered by status."""
        wanted = JobStatus(status) if status else None
        items = self._snapshot()
        if wanted is not None:
            items = [j for j in items if j.status is wanted]
        items.sort(key=lambda j: j.created_at, reverse=True)
        return items

"""
Print Job Model
===============

Persisted record of one label print request and its outcome.

Lifecycle:
    queued -> processing -> done | failed

A failed job may be picked up again by the queue (a new attempt starts at
``processing``). A job left in ``processing`` by a crashed worker may also be
picked up again; the re-pickup counts as a new attempt. A done job is never
reprocessed.
"""

import uuid
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any, List

from ..config import DEFAULT_ORG_ID
from ..errors import InvalidTransitionError


class JobStatus(str, Enum):
    """Print job status, stored as its string value."""

    QUEUED = 'queued'
    PROCESSING = 'processing'
    DONE = 'done'
    FAILED = 'failed'

    @property
    def is_terminal(self) -> bool:
        """True for done and failed (end of one attempt)."""
        return self in (JobStatus.DONE, JobStatus.FAILED)


# Allowed source states for each target state
TRANSITIONS = {
    JobStatus.PROCESSING: (JobStatus.QUEUED, JobStatus.FAILED, JobStatus.PROCESSING),
    JobStatus.DONE: (JobStatus.PROCESSING,),
    JobStatus.FAILED: (JobStatus.PROCESSING,),
}

_DATETIME_FIELDS = ['created_at', 'updated_at', 'started_at', 'finished_at']


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class PrintJob:
    """Print job request and state."""

    # Identification
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    org_id: str = DEFAULT_ORG_ID

    # What to print
    entity_type: str = ''
    entity_ids: List[Any] = field(default_factory=list)
    options: Dict[str, Any] = field(default_factory=dict)
    copies: int = 1

    # Where and who
    printer_id: Optional[str] = None
    user_id: Optional[str] = None
    user_name: Optional[str] = None

    # Status
    status: JobStatus = JobStatus.QUEUED
    attempts: int = 0
    artifact_path: Optional[str] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    # Timestamps
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    def __post_init__(self):
        self.status = JobStatus(self.status)
        self.org_id = self.org_id or DEFAULT_ORG_ID

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        data['status'] = self.status.value
        for key in _DATETIME_FIELDS:
            if data.get(key):
                data[key] = data[key].isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PrintJob':
        """Create from dictionary."""
        data = dict(data)
        for key in _DATETIME_FIELDS:
            if data.get(key) and isinstance(data[key], str):
                data[key] = datetime.fromisoformat(data[key])
        return cls(**data)

    def apply_transition(
        self,
        status: JobStatus,
        *,
        artifact_path: Optional[str] = None,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> None:
        """
        Move the job to ``status``, enforcing the lifecycle invariants.

        - ``artifact_path`` is accepted only (and required) when moving to done
        - ``error_code`` is accepted only (and required) when moving to failed
        - entering processing stamps ``started_at`` and counts an attempt
        - entering a terminal state stamps ``finished_at``

        Raises:
            InvalidTransitionError: if the move or its arguments are not allowed
        """
        status = JobStatus(status)
        allowed = TRANSITIONS.get(status, ())
        if self.status not in allowed:
            raise InvalidTransitionError(
                f'Cannot move job {self.id} from {self.status.value} to {status.value}'
            )
        if artifact_path is not None and status is not JobStatus.DONE:
            raise InvalidTransitionError('artifact_path can only be set when moving to done')
        if (error_code is not None or error_message is not None) and status is not JobStatus.FAILED:
            raise InvalidTransitionError('error details can only be set when moving to failed')
        if status is JobStatus.DONE and not artifact_path:
            raise InvalidTransitionError('done requires an artifact_path')
        if status is JobStatus.FAILED and not error_code:
            raise InvalidTransitionError('failed requires an error_code')

        now = at or utcnow()
        if status is JobStatus.PROCESSING:
            self.started_at = now
            self.finished_at = None
            self.artifact_path = None
            self.error_code = None
            self.error_message = None
            self.attempts += 1
        elif status is JobStatus.DONE:
            self.finished_at = now
            self.artifact_path = artifact_path
        else:
            self.finished_at = now
            self.error_code = error_code
            self.error_message = error_message or ''

        self.status = status
        self.updated_at = now

    def start(self):
        """Mark job as picked up by the processor."""
        self.apply_transition(JobStatus.PROCESSING)

    def complete(self, artifact_path: str):
        """Mark job as delivered."""
        self.apply_transition(JobStatus.DONE, artifact_path=artifact_path)

    def fail(self, error_code: str, error_message: str):
        """Mark job as failed."""
        self.apply_transition(JobStatus.FAILED, error_code=error_code, error_message=error_message)

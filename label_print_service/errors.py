"""
Errors
======

Exception taxonomy for the print pipeline.

Everything raised after a job enters ``processing`` is recorded on the job
(``error_code`` / ``error_message``) and re-raised to the caller.
"""

from enum import Enum
from typing import Optional


class PrintServiceError(Exception):
    """Base class for all print service errors."""


class JobNotFoundError(PrintServiceError):
    """The referenced job id does not resolve to a stored record."""

    def __init__(self, job_id: str):
        super().__init__(f'Print job not found: {job_id}')
        self.job_id = job_id


class InvalidTransitionError(PrintServiceError):
    """A status change that would break the job lifecycle invariants."""


class LabelError(PrintServiceError):
    """Label payload could not be produced."""


class UnsupportedFormatError(LabelError):
    """Requested label format has no renderer."""

    def __init__(self, fmt: str):
        super().__init__(f'Unsupported label format: {fmt!r}')
        self.format = fmt


class UnsupportedEntityTypeError(LabelError):
    """Requested entity type cannot be labelled."""

    def __init__(self, entity_type: str):
        super().__init__(f'Unsupported entity_type: {entity_type!r}')
        self.entity_type = entity_type


class DeliveryErrorKind(str, Enum):
    """Failure classes reported by delivery drivers."""

    CONNECT_FAILED = 'ConnectFailed'
    WRITE_FAILED = 'WriteFailed'
    IPP_REJECTED = 'IppRejected'
    INVALID_DESTINATION = 'InvalidDestination'
    STORAGE_WRITE_FAILED = 'StorageWriteFailed'


class DeliveryError(PrintServiceError):
    """
    Transport or storage fault raised by a delivery driver.

    Args:
        kind: Failure class
        message: Human readable detail
        cause: Underlying exception, if any
    """

    def __init__(self, kind: DeliveryErrorKind, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.kind = DeliveryErrorKind(kind)
        self.cause = cause

    def __str__(self) -> str:
        return f'{self.kind.value}: {self.args[0]}'


def error_code_for(exc: BaseException) -> str:
    """Short machine-readable tag recorded on a failed job."""
    if isinstance(exc, DeliveryError):
        return exc.kind.value
    return type(exc).__name__

"""
Logging utilities for the print service.

- JobContextFilter attaches the id of the job being processed to every record
- JsonFormatter for structured logs when LABELPRINT_JSON_LOGS=true
- configure_logging() initializes root logging once for CLI and worker use
"""

from __future__ import annotations

import contextlib
import contextvars
import json
import logging
from typing import Iterator, Optional

from .config import JSON_LOGS, LOG_LEVEL

_current_job: contextvars.ContextVar[str] = contextvars.ContextVar('current_job', default='-')


@contextlib.contextmanager
def job_context(job_id: str) -> Iterator[None]:
    """Tag log records emitted inside the block with ``job_id``."""
    token = _current_job.set(str(job_id))
    try:
        yield
    finally:
        _current_job.reset(token)


class JobContextFilter(logging.Filter):
    """Attach the current job id (or '-') to log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        record.job_id = _current_job.get()
        return True


class JsonFormatter(logging.Formatter):
    """
    Minimal JSON formatter that includes timestamp, level, logger, message and job_id.
    """

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        base = {
            'ts': self.formatTime(record, self.datefmt),
            'level': record.levelname,
            'logger': record.name,
            'msg': record.getMessage(),
            'job_id': getattr(record, 'job_id', '-'),
        }
        if record.exc_info:
            base['exc'] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def configure_logging(level: Optional[str] = None, json_logs: Optional[bool] = None) -> logging.Logger:
    """
    Configure root logging for the service.

    Clears existing root handlers so repeated calls do not duplicate output,
    picks the JSON or plain formatter and installs JobContextFilter.

    Returns the configured root logger.
    """
    root = logging.getLogger()
    root.setLevel(level or LOG_LEVEL)
    root.handlers = []

    use_json = JSON_LOGS if json_logs is None else json_logs
    formatter: logging.Formatter
    if use_json:
        formatter = JsonFormatter()
    else:
        formatter = logging.Formatter('[%(asctime)s] %(levelname)s %(job_id)s %(name)s: %(message)s')

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.addFilter(JobContextFilter())
    root.addHandler(handler)
    return root


__all__ = ['JobContextFilter', 'JsonFormatter', 'configure_logging', 'job_context']

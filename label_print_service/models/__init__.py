"""
Label Print Service Models
"""

from .printer import Printer
from .job import PrintJob, JobStatus

__all__ = ['Printer', 'PrintJob', 'JobStatus']

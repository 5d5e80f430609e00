"""
Print Job Processor
===================

Runs one pickup of a print job:

    load job -> processing (committed) -> render -> deliver -> done
                                               \\-> failed, error re-raised

The processing transition is saved before any rendering or I/O and is never
rolled back. Failures after it are recorded on the job and then re-raised so
the calling queue decides about retries. A retried job repeats the whole
render and delivery, so delivery is at-least-once.
"""

import logging
from typing import Dict, Optional

from .drivers import BaseDriver, default_drivers
from .errors import error_code_for
from .labels import LabelService
from .log import job_context
from .models import JobStatus, Printer, PrintJob
from .routing import Route, select_route
from .store import JobStore, PrinterStore

logger = logging.getLogger(__name__)


class PrintJobProcessor:
    """Orchestrates rendering and delivery for stored print jobs."""

    def __init__(
        self,
        jobs: JobStore,
        printers: PrinterStore,
        labels: Optional[LabelService] = None,
        drivers: Optional[Dict[str, BaseDriver]] = None,
    ):
        self.jobs = jobs
        self.printers = printers
        self.labels = labels or LabelService()
        self.drivers = drivers or default_drivers()

    def _printer_for(self, job: PrintJob) -> Optional[Printer]:
        if not job.printer_id:
            return None
        printer = self.printers.get(job.printer_id)
        if printer is None:
            logger.warning(f'Printer {job.printer_id} not found; using default delivery')
        return printer

    def _render_options(self, job: PrintJob) -> dict:
        options = dict(job.options or {})
        if job.copies > 1:
            options.setdefault('copies', job.copies)
        return options

    def route_for(self, job: PrintJob) -> Route:
        """Route the job would take with the current printer configuration."""
        return select_route(job, self._printer_for(job))

    def process(self, job_id: str) -> PrintJob:
        """
        Process one job.

        Returns:
            The job in its terminal state

        Raises:
            JobNotFoundError: unknown job id (nothing is written)
            Exception: any rendering or delivery failure, after the job is marked failed
        """
        job = self.jobs.load(job_id)

        with job_context(job.id):
            if job.status is JobStatus.DONE:
                logger.info('Job already done; skipping')
                return job

            if job.status is JobStatus.PROCESSING:
                logger.warning(f'Job was left processing since {job.started_at}; picking it up again')
            job.start()
            self.jobs.save(job)
            logger.info(f'Processing job (attempt {job.attempts})')

            try:
                route = self.route_for(job)
                logger.info(f'Route: {route.format} via {route.driver}')
                payload = self.labels.generate(
                    route.format, job.entity_type, job.entity_ids, self._render_options(job)
                )
                artifact = self.drivers[route.driver].deliver(payload, route.destination)
                job.complete(artifact)
            except Exception as e:
                logger.exception(f'Print job failed: {e}')
                job.fail(error_code_for(e), str(e))
                self.jobs.save(job)
                raise

            self.jobs.save(job)
            logger.info(f'Job done: {artifact}')
            return job

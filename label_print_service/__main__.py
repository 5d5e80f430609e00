"""
Label Print Service - Command Line
==================================

Usage:
    python -m label_print_service add-printer --name Dock --driver zpl --host 10.0.0.5
    python -m label_print_service enqueue --entity-type item --ids 1 2 3 --printer ABCD1234
    python -m label_print_service enqueue --entity-type location --ids A1 --async
    python -m label_print_service process JOB_ID
    python -m label_print_service show JOB_ID
    python -m label_print_service list --status failed
    python -m label_print_service worker
"""

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import DATA_DIR, POLL_SECONDS, STORAGE_DIR
from .drivers import default_drivers
from .labels import LabelService
from .log import configure_logging
from .models import JobStatus, Printer
from .processor import PrintJobProcessor
from .store import JobStore, PrinterStore
from .worker import PrintWorker

logger = logging.getLogger('label_print_service')


def _parse_options(pairs: List[str]) -> dict:
    """Parse repeated key=value options; values are JSON when possible."""
    options = {}
    for pair in pairs or []:
        key, sep, value = pair.partition('=')
        if not sep or not key:
            raise argparse.ArgumentTypeError(f'Option must be key=value: {pair!r}')
        try:
            options[key] = json.loads(value)
        except ValueError:
            options[key] = value
    return options


def _emit(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='label-print-service', description='Label print job pipeline')
    parser.add_argument('--version', action='version', version=f'%(prog)s {__version__}')
    parser.add_argument('--data-dir', default=DATA_DIR, help='Directory holding jobs.json / printers.json')
    parser.add_argument('--storage-dir', default=None, help='Artifact storage root')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('add-printer', help='Register a printer')
    p.add_argument('--name', required=True)
    p.add_argument('--driver', default=None, help='zpl, ipp (anything else stores to file)')
    p.add_argument('--host')
    p.add_argument('--port', type=int)
    p.add_argument('--uri', help='IPP printer URI')
    p.add_argument('--org')

    p = sub.add_parser('enqueue', help='Create a print job and process it')
    p.add_argument('--entity-type', required=True)
    p.add_argument('--ids', nargs='+', required=True)
    p.add_argument('--printer')
    p.add_argument('--org')
    p.add_argument('--user-name')
    p.add_argument('--copies', type=int, default=1)
    p.add_argument('--option', action='append', default=[], metavar='KEY=VALUE')
    p.add_argument('--async', dest='async_', action='store_true',
                   help='Hand the job to the worker queue (with its retry policy) instead of processing inline')

    p = sub.add_parser('process', help='Process an existing job')
    p.add_argument('job_id')

    p = sub.add_parser('show', help='Show a job record')
    p.add_argument('job_id')

    p = sub.add_parser('list', help='List jobs')
    p.add_argument('--status', choices=[s.value for s in JobStatus])

    sub.add_parser('printers', help='List printers')
    sub.add_parser('worker', help='Run the background worker over queued jobs')
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point for the console script."""
    args = build_parser().parse_args(argv)
    configure_logging()

    data_dir = Path(args.data_dir)
    jobs = JobStore(str(data_dir / 'jobs.json'))
    printers = PrinterStore(str(data_dir / 'printers.json'))
    processor = PrintJobProcessor(
        jobs,
        printers,
        labels=LabelService(),
        drivers=default_drivers(args.storage_dir or STORAGE_DIR),
    )

    try:
        if args.command == 'add-printer':
            printer = Printer(
                name=args.name,
                driver=args.driver,
                host=args.host,
                port=args.port,
                config={'uri': args.uri} if args.uri else {},
                org_id=args.org,
            )
            printers.add(printer)
            _emit(printer.to_dict())
            return 0

        if args.command == 'printers':
            _emit([p.to_dict() for p in printers.list()])
            return 0

        if args.command == 'enqueue':
            job = jobs.create(
                args.entity_type,
                args.ids,
                options=_parse_options(args.option),
                org_id=args.org,
                printer_id=args.printer,
                user_name=args.user_name,
                copies=args.copies,
            )
            if args.async_:
                worker = PrintWorker(processor)
                worker.enqueue(job.id)
                worker.drain()
                # a retry may still be waiting on its backoff timer
                while worker.worker_status()['pending_retries'] or worker.queue.qsize():
                    time.sleep(0.1)
                    worker.drain()
            else:
                try:
                    processor.process(job.id)
                except Exception as e:
                    logger.error(f'Job {job.id} failed: {e}')
            job = jobs.load(job.id)
            _emit(job.to_dict())
            return 0 if job.status is JobStatus.DONE else 1

        if args.command == 'process':
            _emit(processor.process(args.job_id).to_dict())
            return 0

        if args.command == 'show':
            _emit(jobs.load(args.job_id).to_dict())
            return 0

        if args.command == 'list':
            _emit([j.to_dict() for j in jobs.list(args.status)])
            return 0

        if args.command == 'worker':
            worker = PrintWorker(processor)
            worker.ensure_worker()
            while True:
                worker.enqueue_pending()
                time.sleep(POLL_SECONDS)

    except KeyboardInterrupt:
        return 0
    except Exception as e:
        logger.error(f'{args.command} failed: {e}')
        return 1

    return 0


if __name__ == '__main__':
    sys.exit(main())

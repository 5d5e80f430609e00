"""
Route Selection
===============

Pure mapping from a job and its printer to (format, driver, destination).

    printer.driver == "zpl"  -> zpl over raw TCP to printer host/port
    printer.driver == "ipp"  -> pdf over IPP, or to a file when no uri is set
    anything else / none     -> zpl to a file
"""

from dataclasses import dataclass
from typing import Optional, Union

from .config import DEFAULT_ORG_ID, DEFAULT_PREFIX
from .drivers import FileDestination, IppDestination, TcpDestination
from .models import Printer, PrintJob

Destination = Union[TcpDestination, IppDestination, FileDestination]


@dataclass(frozen=True)
class Route:
    format: str
    driver: str
    destination: Destination


def select_route(job: PrintJob, printer: Optional[Printer]) -> Route:
    """Choose how a job is rendered and delivered. No I/O."""
    org_id = job.org_id or DEFAULT_ORG_ID
    tag = printer.driver_tag if printer is not None else ''

    if tag == 'zpl':
        return Route('zpl', 'tcp', TcpDestination(host=printer.host or '', port=printer.effective_port))

    if tag == 'ipp':
        uri = printer.ipp_uri
        if not uri:
            return Route(
                'pdf',
                'file',
                FileDestination(org_id=org_id, format='pdf', prefix=DEFAULT_PREFIX, is_base64=True),
            )
        return Route(
            'pdf',
            'ipp',
            IppDestination(
                uri=uri,
                org_id=org_id,
                format='pdf',
                is_base64=True,
                job_name=f'PrintJob {job.id}',
                username=job.user_name or 'system',
            ),
        )

    return Route('zpl', 'file', FileDestination(org_id=org_id, format='zpl'))

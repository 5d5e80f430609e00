"""
IPP Driver
==========

Submits the payload to a network printer as an IPP Print-Job request.

Protocol Reference:
- RFC 8010 (IPP/1.1 Encoding and Transport)
- RFC 8011 (IPP/1.1 Model and Semantics)
- Transport: HTTP POST, Content-Type application/ipp
- Port: 631 (default for ipp:// and ipps://)

Request and response bodies are encoded and decoded by pyipp's serializer and
parser; the HTTP round trip goes through requests. The response is streamed
and read against one deadline covering the whole round trip.
"""

import base64
import binascii
import itertools
import logging
import struct
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urlsplit, urlunsplit

import requests
from pyipp.enums import IppOperation
from pyipp.parser import parse as parse_ipp
from pyipp.serializer import encode_dict

from .base import BaseDriver
from ..config import DEFAULT_ORG_ID, IPP_PORT, IPP_TIMEOUT
from ..errors import DeliveryError, DeliveryErrorKind

logger = logging.getLogger(__name__)

# =============================================================================
# Protocol Constants
# =============================================================================

IPP_VERSION = (1, 1)

MIME_TYPES = {
    'pdf': 'application/pdf',
    'png': 'image/png',
    'zpl': 'application/vnd.zebra-zpl',
}

URI_SCHEMES = {
    'ipp': 'http',
    'ipps': 'https',
    'http': 'http',
    'https': 'https',
}

# Response groups as named by the pyipp parser
_RESPONSE_GROUPS = ('operation-attributes', 'jobs', 'printers', 'unsupported-attributes')

_READ_CHUNK = 8192

_request_ids = itertools.count(1)


@dataclass(frozen=True)
class IppDestination:
    uri: str = ''
    org_id: str = DEFAULT_ORG_ID
    format: str = 'pdf'
    is_base64: bool = True
    job_name: str = 'Label Print Job'
    username: str = 'system'


@dataclass
class IppResponse:
    """Decoded IPP response header and attributes (first value per name)."""

    version: Tuple[int, int]
    status_code: int
    request_id: int
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        # successful-ok range is 0x0000-0x00FF
        return 0 <= self.status_code < 0x0100


# =============================================================================
# Encoding
# =============================================================================


def encode_print_job(
    printer_uri: str,
    document: bytes,
    *,
    username: str,
    job_name: str,
    document_format: str,
    request_id: int,
) -> bytes:
    """Build a complete Print-Job request body."""
    header = encode_dict({
        'version': IPP_VERSION,
        'operation': IppOperation.PRINT_JOB,
        'request-id': request_id,
        'operation-attributes-tag': {
            'attributes-charset': 'utf-8',
            'attributes-natural-language': 'en',
            'printer-uri': printer_uri,
            'requesting-user-name': username,
            'job-name': job_name,
            'document-format': document_format,
        },
    })
    return header + document


def _groups(parsed: Dict[str, Any]):
    for key in _RESPONSE_GROUPS:
        group = parsed.get(key)
        if isinstance(group, dict):
            yield group
        elif isinstance(group, list):
            yield from (g for g in group if isinstance(g, dict))


def _first_value(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def parse_response(body: bytes) -> IppResponse:
    """
    Decode an IPP response.

    Raises:
        ValueError: if the body is truncated or malformed
    """
    try:
        parsed = parse_ipp(body)
    except (struct.error, IndexError, KeyError, ValueError) as e:
        raise ValueError(f'Cannot decode IPP response: {e}') from e

    attributes: Dict[str, Any] = {}
    for group in _groups(parsed):
        for name, value in group.items():
            attributes.setdefault(name, _first_value(value))
    return IppResponse(tuple(parsed['version']), parsed['status-code'], parsed['request-id'], attributes)


def http_url_for(uri: str) -> str:
    """
    Map a printer URI to the HTTP URL it is reached at.

    ipp://host/path -> http://host:631/path, ipps:// -> https://host:631/...

    Raises:
        ValueError: if the URI has no usable scheme or host
    """
    parts = urlsplit((uri or '').strip())
    scheme = URI_SCHEMES.get(parts.scheme.lower())
    if not scheme or not parts.hostname:
        raise ValueError(f'Invalid printer URI: {uri!r}')
    netloc = parts.netloc
    if parts.scheme.lower() in ('ipp', 'ipps') and parts.port is None:
        netloc = f'{netloc}:{IPP_PORT}'
    return urlunsplit((scheme, netloc, parts.path or '/', parts.query, ''))


# =============================================================================
# Driver
# =============================================================================


class IppDriver(BaseDriver):
    """IPP Print-Job delivery over HTTP."""

    name = 'ipp'
    destination_type = IppDestination

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = IPP_TIMEOUT if timeout is None else timeout

    def _document(self, payload: bytes, is_base64: bool) -> bytes:
        if not is_base64:
            return payload
        try:
            return base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            logger.warning('Payload flagged as base64 is not valid base64; sending as-is')
            return payload

    def _read_body(self, response, url: str, deadline: float) -> bytes:
        """Read the streamed response, giving up once the deadline has passed."""
        chunks = []
        try:
            for chunk in response.iter_content(chunk_size=_READ_CHUNK):
                chunks.append(chunk)
                if time.monotonic() > deadline:
                    raise DeliveryError(
                        DeliveryErrorKind.CONNECT_FAILED,
                        f'IPP response from {url} not complete within {self.timeout}s',
                    )
        except requests.exceptions.RequestException as e:
            raise DeliveryError(DeliveryErrorKind.CONNECT_FAILED, f'IPP response from {url} failed: {e}', e) from e
        return b''.join(chunks)

    def deliver(self, payload: bytes, destination) -> str:
        dest = self.coerce_destination(destination)
        uri = str(dest.uri or '').strip()

        try:
            url = http_url_for(uri)
        except ValueError as e:
            raise DeliveryError(DeliveryErrorKind.INVALID_DESTINATION, str(e), e) from e

        request_id = next(_request_ids)
        body = encode_print_job(
            uri,
            self._document(payload, dest.is_base64),
            username=dest.username or 'system',
            job_name=dest.job_name or 'Label Print Job',
            document_format=MIME_TYPES.get((dest.format or '').lower(), 'application/octet-stream'),
            request_id=request_id,
        )

        # connect and each socket read are bounded by the timeout, the whole
        # round trip by the deadline checked between reads
        deadline = time.monotonic() + self.timeout
        try:
            response = requests.post(
                url,
                data=body,
                headers={'Content-Type': 'application/ipp'},
                timeout=self.timeout,
                stream=True,
            )
        except requests.exceptions.Timeout as e:
            raise DeliveryError(DeliveryErrorKind.CONNECT_FAILED, f'IPP request timeout to {url}', e) from e
        except requests.exceptions.RequestException as e:
            raise DeliveryError(DeliveryErrorKind.CONNECT_FAILED, f'Cannot connect to {url}: {e}', e) from e

        try:
            if not 200 <= response.status_code < 300:
                raise DeliveryError(
                    DeliveryErrorKind.IPP_REJECTED,
                    f'Printer answered HTTP {response.status_code} for {uri}',
                )
            content = self._read_body(response, url, deadline)
        finally:
            response.close()

        try:
            result = parse_response(content)
        except ValueError as e:
            raise DeliveryError(DeliveryErrorKind.IPP_REJECTED, f'Malformed IPP response: {e}', e) from e

        if not result.ok:
            message = result.attributes.get('status-message') or 'no status message'
            raise DeliveryError(
                DeliveryErrorKind.IPP_REJECTED,
                f'IPP status 0x{result.status_code:04x} from {uri}: {message}',
            )

        job_id = result.attributes.get('job-id')
        logger.info(f'IPP job accepted by {uri} (job-id={job_id}, org={dest.org_id})')
        if result.attributes.get('job-uri'):
            return str(result.attributes['job-uri'])
        if job_id is not None:
            return f'{uri}#job-id={job_id}'
        return f'{uri}#request-id={request_id}'

"""
File Driver
===========

Persists the payload under the artifact storage root. Default destination
when no printer is configured, and the fallback for IPP printers without a
URI.

Layout: {prefix}/{org_id}/{YYYYmmddTHHMMSS}_{random}.{format}
"""

import base64
import binascii
import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from .base import BaseDriver
from ..config import DEFAULT_ORG_ID, DEFAULT_PREFIX, STORAGE_DIR
from ..errors import DeliveryError, DeliveryErrorKind

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r'[^A-Za-z0-9._-]+')


def safe_component(value: str, default: str) -> str:
    """Reduce a value to a single safe path segment."""
    cleaned = _UNSAFE.sub('_', str(value or '')).strip('._')
    return cleaned or default


@dataclass(frozen=True)
class FileDestination:
    org_id: str = DEFAULT_ORG_ID
    format: str = 'zpl'
    prefix: str = DEFAULT_PREFIX
    is_base64: bool = False


class FileDriver(BaseDriver):
    """Local storage delivery."""

    name = 'file'
    destination_type = FileDestination

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or STORAGE_DIR)

    def relative_path(self, dest: FileDestination) -> str:
        prefix = '/'.join(
            safe_component(part, DEFAULT_PREFIX) for part in str(dest.prefix or DEFAULT_PREFIX).split('/') if part
        ) or DEFAULT_PREFIX
        org_id = safe_component(dest.org_id, DEFAULT_ORG_ID)
        ext = safe_component(dest.format, 'bin').lower()
        stamp = datetime.now(timezone.utc).strftime('%Y%m%dT%H%M%S')
        return f'{prefix}/{org_id}/{stamp}_{secrets.token_hex(4)}.{ext}'

    def deliver(self, payload: bytes, destination) -> str:
        dest = self.coerce_destination(destination)

        data = payload
        if dest.is_base64:
            try:
                data = base64.b64decode(payload, validate=True)
            except (binascii.Error, ValueError):
                logger.warning('Payload flagged as base64 is not valid base64; writing as-is')

        relative = self.relative_path(dest)
        target = self.root / relative
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, 'xb') as f:
                f.write(data)
        except OSError as e:
            raise DeliveryError(
                DeliveryErrorKind.STORAGE_WRITE_FAILED, f'Failed to write {relative}: {e}', e
            ) from e

        logger.info(f'Stored {len(data)} bytes at {relative}')
        return relative

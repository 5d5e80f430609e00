"""
TCP Raw Driver
==============

Pushes the payload as a raw byte stream to a port 9100 style printer.

There is no protocol envelope: the payload (typically ZPL) is the whole print
stream. Connect and write share one deadline.
"""

import logging
import socket
import time
from dataclasses import dataclass
from typing import Optional

from .base import BaseDriver
from ..config import TCP_TIMEOUT, ZPL_PORT
from ..errors import DeliveryError, DeliveryErrorKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TcpDestination:
    host: str = ''
    port: int = ZPL_PORT


class TcpRawDriver(BaseDriver):
    """Raw socket delivery (JetDirect / port 9100)."""

    name = 'tcp'
    destination_type = TcpDestination

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = TCP_TIMEOUT if timeout is None else timeout

    def deliver(self, payload: bytes, destination) -> str:
        dest = self.coerce_destination(destination)
        host = str(dest.host or '').strip()
        try:
            port = int(dest.port or ZPL_PORT)
        except (TypeError, ValueError):
            port = 0

        if not host or port <= 0:
            raise DeliveryError(
                DeliveryErrorKind.INVALID_DESTINATION,
                'Host and port are required for TCP delivery',
            )

        deadline = time.monotonic() + self.timeout
        try:
            sock = socket.create_connection((host, port), timeout=self.timeout)
        except socket.timeout as e:
            raise DeliveryError(
                DeliveryErrorKind.CONNECT_FAILED, f'Connection timeout to {host}:{port}', e
            ) from e
        except OSError as e:
            raise DeliveryError(
                DeliveryErrorKind.CONNECT_FAILED, f'Failed to connect to {host}:{port}: {e}', e
            ) from e

        try:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise socket.timeout('deadline exceeded before write')
            sock.settimeout(remaining)
            sock.sendall(payload)
        except socket.timeout as e:
            raise DeliveryError(
                DeliveryErrorKind.WRITE_FAILED, f'Write timeout to {host}:{port}', e
            ) from e
        except OSError as e:
            raise DeliveryError(
                DeliveryErrorKind.WRITE_FAILED, f'Failed to write payload to {host}:{port}: {e}', e
            ) from e
        finally:
            sock.close()

        logger.info(f'Sent {len(payload)} bytes to {host}:{port}')
        return f'tcp://{host}:{port}?bytes={len(payload)}'

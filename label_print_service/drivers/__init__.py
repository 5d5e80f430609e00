"""
Delivery Drivers
================

Transport drivers taking a rendered payload to its destination.
"""

from typing import Dict, Optional

from .base import BaseDriver
from .tcp import TcpRawDriver, TcpDestination
from .ipp import IppDriver, IppDestination
from .file import FileDriver, FileDestination

__all__ = [
    'BaseDriver',
    'TcpRawDriver', 'TcpDestination',
    'IppDriver', 'IppDestination',
    'FileDriver', 'FileDestination',
    'default_drivers',
]


def default_drivers(storage_root: Optional[str] = None) -> Dict[str, BaseDriver]:
    """One instance of each driver, keyed by route tag."""
    return {
        TcpRawDriver.name: TcpRawDriver(),
        IppDriver.name: IppDriver(),
        FileDriver.name: FileDriver(storage_root),
    }

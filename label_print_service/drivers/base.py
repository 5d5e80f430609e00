"""
Base Driver
===========

Abstract base class for delivery drivers.

Drivers are stateless: everything a delivery needs travels in the
destination, so one instance can serve concurrent jobs.
"""

from abc import ABC, abstractmethod
from dataclasses import fields
from typing import Any, Mapping, Union


def from_mapping(cls, data: Mapping[str, Any]):
    """Build a destination dataclass from a mapping, ignoring unknown keys."""
    names = {f.name for f in fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in names and v is not None})


class BaseDriver(ABC):
    """Abstract base class for delivery drivers."""

    #: Driver tag used in routes (tcp, ipp, file)
    name: str = ''
    #: Destination dataclass accepted by deliver()
    destination_type: type = type(None)

    def coerce_destination(self, destination: Union[Mapping[str, Any], Any]):
        """Accept either the destination dataclass or a plain mapping."""
        if isinstance(destination, self.destination_type):
            return destination
        return from_mapping(self.destination_type, destination or {})

    @abstractmethod
    def deliver(self, payload: bytes, destination: Any) -> str:
        """
        Deliver a payload.

        Args:
            payload: Rendered label bytes
            destination: Driver destination (dataclass or mapping)

        Returns:
            Artifact descriptor (path or acknowledgment)

        Raises:
            DeliveryError: on transport or storage faults
        """
        pass

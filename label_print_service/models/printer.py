"""
Printer Model
=============

Printer configuration read by the print pipeline.
"""

import uuid
from dataclasses import dataclass, field, fields, asdict
from datetime import datetime, timezone
from typing import Optional, Dict, Any

from ..config import ZPL_PORT


@dataclass
class Printer:
    """Printer configuration."""

    # Identification
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8].upper())
    name: str = ''
    org_id: Optional[str] = None

    # Delivery
    driver: Optional[str] = None  # zpl, ipp (anything else -> file)
    host: Optional[str] = None  # For raw TCP printers
    port: Optional[int] = None  # Defaults to 9100
    config: Dict[str, Any] = field(default_factory=dict)  # e.g. {"uri": "ipp://..."}

    # Timestamps
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def driver_tag(self) -> str:
        """Normalized driver tag ('' when unset)."""
        return (self.driver or '').strip().lower()

    @property
    def effective_port(self) -> int:
        return int(self.port or ZPL_PORT)

    @property
    def ipp_uri(self) -> str:
        return str((self.config or {}).get('uri') or '').strip()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        data = asdict(self)
        if data.get('created_at'):
            data['created_at'] = data['created_at'].isoformat()
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Printer':
        """Create from dictionary, ignoring keys this model does not define."""
        known = {f.name for f in fields(cls)}
        data = {k: v for k, v in data.items() if k in known}
        if data.get('created_at') and isinstance(data['created_at'], str):
            data['created_at'] = datetime.fromisoformat(data['created_at'])
        return cls(**data)

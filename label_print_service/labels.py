"""
Label Service
=============

Resolves entity ids to printable codes and renders them in the requested
format. Stateless apart from read access to the entity catalog.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .config import CATALOG_PATH
from .errors import LabelError, UnsupportedEntityTypeError, UnsupportedFormatError
from .renderers import BaseRenderer, get_renderer

logger = logging.getLogger(__name__)

ENTITY_TYPES = ('item', 'location')


def normalize_entity_type(entity_type: str) -> str:
    """'items' -> 'item'; raises for anything that is not labelable."""
    tag = (entity_type or '').strip().lower()
    if tag.endswith('s'):
        tag = tag[:-1]
    if tag not in ENTITY_TYPES:
        raise UnsupportedEntityTypeError(entity_type)
    return tag


class EntityCodeLookup:
    """
    Maps entity ids to the codes printed on their labels.

    With no catalog every id is its own code. With a catalog
    (``{"item": {"1": "ITM-0001"}}``) ids without a code are skipped.
    """

    def __init__(self, catalog: Optional[Mapping[str, Mapping[str, Any]]] = None):
        self.catalog = catalog

    @classmethod
    def from_file(cls, path: Optional[str]) -> 'EntityCodeLookup':
        """Load a JSON catalog; a missing path means no catalog."""
        if not path or not Path(path).exists():
            return cls()
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        catalog = {normalize_entity_type(k): v for k, v in data.items()}
        return cls(catalog)

    def codes_for(self, entity_type: str, entity_ids: Sequence[Any]) -> List[str]:
        tag = normalize_entity_type(entity_type)
        if self.catalog is None:
            return [str(entity_id) for entity_id in entity_ids]

        entries = self.catalog.get(tag) or {}
        codes = []
        for entity_id in entity_ids:
            code = entries.get(str(entity_id))
            if code:
                codes.append(str(code))
            else:
                logger.debug(f'No code for {tag} {entity_id}; skipped')
        return codes


class LabelService:
    """Produces label payloads for an entity selection."""

    def __init__(
        self,
        lookup: Optional[EntityCodeLookup] = None,
        renderers: Optional[Dict[str, BaseRenderer]] = None,
    ):
        self.lookup = lookup if lookup is not None else EntityCodeLookup.from_file(CATALOG_PATH)
        # Renderer instances by format tag, created from the registry on first use
        self.renderers: Dict[str, BaseRenderer] = dict(renderers or {})

    def _renderer(self, fmt: str) -> BaseRenderer:
        tag = (fmt or '').strip().lower()
        if tag not in self.renderers:
            renderer_class = get_renderer(tag)
            if renderer_class is None:
                raise UnsupportedFormatError(fmt)
            self.renderers[tag] = renderer_class()
        return self.renderers[tag]

    def generate(
        self,
        fmt: str,
        entity_type: str,
        entity_ids: Sequence[Any],
        options: Optional[Mapping[str, Any]] = None,
    ) -> bytes:
        """
        Render labels for the given entities.

        Args:
            fmt: Format tag (zpl, pdf, png)
            entity_type: Entity kind, e.g. "item"
            entity_ids: Non-empty ordered ids
            options: Renderer options

        Returns:
            Payload bytes (ZPL text, base64 PDF, or JSON list of base64 PNGs)

        Raises:
            UnsupportedFormatError: unknown format
            UnsupportedEntityTypeError: unknown entity type
            LabelError: empty ids or no codes resolved
        """
        renderer = self._renderer(fmt)
        if not entity_ids:
            raise LabelError('entity_ids must not be empty')

        codes = self.lookup.codes_for(entity_type, list(entity_ids))
        if not codes:
            raise LabelError('No codes found for requested entities')

        payload = renderer.render(codes, dict(options or {}))
        logger.info(f'Rendered {len(codes)} {renderer.format} label(s) ({len(payload)} bytes)')
        return payload

    def generate_zpl(
        self,
        entity_type: str,
        entity_ids: Sequence[Any],
        options: Optional[Mapping[str, Any]] = None,
    ) -> bytes:
        """Shortcut for ``generate('zpl', ...)``."""
        return self.generate('zpl', entity_type, entity_ids, options)

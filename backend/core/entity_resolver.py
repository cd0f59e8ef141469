"""Entity Resolver — get-or-create for locations and items.

Each cache entry is resolved at most once: look it up by its natural key
(warehouse + path for locations, company + name for items) and create it only
when the lookup finds nothing. Store errors are fatal for the run; entities
created before the failure stay persisted.
"""

import logging
from dataclasses import dataclass

from backend.core import graph_ops
from backend.core.entity_cache import ItemEntry, LocationEntry
from backend.core.errors import EntityResolutionError, LinkError

logger = logging.getLogger(__name__)


@dataclass
class ResolverStats:
    location_lookups: int = 0
    locations_created: int = 0
    locations_existing: int = 0
    item_lookups: int = 0
    items_created: int = 0
    items_existing: int = 0


class EntityResolver:
    """Resolves cache entries against the store for one company/warehouse."""

    def __init__(self, company_id: str, warehouse_id: str):
        self.company_id = company_id
        self.warehouse_id = warehouse_id
        self.stats = ResolverStats()

    def ensure_location(self, entry: LocationEntry) -> None:
        """Resolve a location entry unless it was already attempted.

        An empty path stays unresolved; rows pointing at it are dropped.
        """
        if entry.attempted:
            return
        if not entry.key:
            entry.resolve(None)
            return

        self.stats.location_lookups += 1
        try:
            existing = graph_ops.get_location_by_path(self.warehouse_id, entry.key)
            if existing:
                self.stats.locations_existing += 1
                entry.resolve(existing.location_id)
                return
            created = graph_ops.create_location(self.warehouse_id, entry.key, entry.name_path)
        except Exception as e:
            raise EntityResolutionError(f"Failed to resolve location '{entry.key}': {e}") from e

        self.stats.locations_created += 1
        entry.resolve(created.location_id)
        logger.debug(f"Created location '{entry.key}' -> {created.location_id}")

    def ensure_item(self, entry: ItemEntry) -> None:
        """Resolve an item entry unless it was already attempted.

        New items are also linked to the active warehouse; existing items
        keep whatever warehouse links they already have.
        """
        if entry.attempted:
            return
        if not entry.key:
            entry.resolve(None)
            return

        self.stats.item_lookups += 1
        try:
            existing = graph_ops.get_item_by_name(self.company_id, entry.key)
            if existing:
                self.stats.items_existing += 1
                entry.resolve(existing.item_id)
                return
            created = graph_ops.create_item(self.company_id, entry.key)
        except Exception as e:
            raise EntityResolutionError(f"Failed to resolve item '{entry.key}': {e}") from e

        self.stats.items_created += 1
        entry.resolve(created.item_id)

        try:
            graph_ops.link_warehouse_item(self.warehouse_id, created.item_id)
        except Exception as e:
            raise LinkError(
                f"Failed to link item '{entry.key}' to warehouse '{self.warehouse_id}': {e}"
            ) from e

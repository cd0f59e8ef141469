"""Batch Entity Cache — run-scoped dedup table for locations and items.

Rows reference the same location path or item number many times; the cache
makes sure each distinct key is resolved against the store at most once per
run. It has no eviction and is dropped together with the run.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class _CacheEntry:
    key: str
    resolved_id: Optional[str] = None
    attempted: bool = False

    @property
    def is_resolved(self) -> bool:
        return self.resolved_id is not None

    def resolve(self, entity_id: Optional[str]) -> None:
        """Record the outcome of the single resolution attempt."""
        if self.attempted:
            raise ValueError(f"Cache entry '{self.key}' was already resolved")
        self.attempted = True
        self.resolved_id = entity_id


@dataclass
class LocationEntry(_CacheEntry):
    name_path: str = ""


@dataclass
class ItemEntry(_CacheEntry):
    pass


class BatchEntityCache:
    """LocationKey -> LocationEntry and ItemKey -> ItemEntry tables."""

    def __init__(self):
        self.locations: dict[str, LocationEntry] = {}
        self.items: dict[str, ItemEntry] = {}

    def location(self, key: str, name_path: str = "") -> LocationEntry:
        """Return the entry for a location key, adding it on first sight."""
        entry = self.locations.get(key)
        if entry is None:
            entry = LocationEntry(key=key, name_path=name_path)
            self.locations[key] = entry
        return entry

    def item(self, key: str) -> ItemEntry:
        """Return the entry for an item key, adding it on first sight."""
        entry = self.items.get(key)
        if entry is None:
            entry = ItemEntry(key=key)
            self.items[key] = entry
        return entry

    def resolved_location_ids(self) -> list[str]:
        """Distinct resolved location IDs, in first-seen order."""
        return _distinct(e.resolved_id for e in self.locations.values() if e.is_resolved)

    def resolved_item_ids(self) -> list[str]:
        """Distinct resolved item IDs, in first-seen order."""
        return _distinct(e.resolved_id for e in self.items.values() if e.is_resolved)

    def __len__(self) -> int:
        return len(self.locations) + len(self.items)


def _distinct(ids) -> list[str]:
    seen: set[str] = set()
    out = []
    for entity_id in ids:
        if entity_id not in seen:
            seen.add(entity_id)
            out.append(entity_id)
    return out

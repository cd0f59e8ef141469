"""Association Linker — idempotent location/item/file association edges."""

import logging

from backend.core import graph_ops
from backend.core.errors import LinkError

logger = logging.getLogger(__name__)


class AssociationLinker:
    """Writes the association edges of one ingestion run.

    Location<->item pairs are remembered for the run so each distinct pair
    reaches the store once, however many rows repeat it. The store layer
    additionally checks for an existing edge before writing.
    """

    def __init__(self, transaction_file_id: str):
        self.transaction_file_id = transaction_file_id
        self.links_created = 0
        self._linked_pairs: set[tuple[str, str]] = set()

    def link_location_item(self, location_id: str, item_id: str) -> None:
        pair = (location_id, item_id)
        if pair in self._linked_pairs:
            return
        try:
            written = graph_ops.link_location_item(location_id, item_id)
        except Exception as e:
            raise LinkError(f"Failed to link location {location_id} with item {item_id}: {e}") from e
        self._linked_pairs.add(pair)
        if written:
            self.links_created += 1

    def link_file_location(self, location_id: str) -> None:
        try:
            written = graph_ops.link_file_location(self.transaction_file_id, location_id)
        except Exception as e:
            raise LinkError(
                f"Failed to link transaction file {self.transaction_file_id} "
                f"to location {location_id}: {e}"
            ) from e
        if written:
            self.links_created += 1

    def link_file_item(self, item_id: str) -> None:
        try:
            written = graph_ops.link_file_item(self.transaction_file_id, item_id)
        except Exception as e:
            raise LinkError(
                f"Failed to link transaction file {self.transaction_file_id} "
                f"to item {item_id}: {e}"
            ) from e
        if written:
            self.links_created += 1

    @property
    def pairs_seen(self) -> int:
        return len(self._linked_pairs)

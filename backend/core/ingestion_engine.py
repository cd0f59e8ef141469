"""Ingestion Engine — orchestrates one transaction file ingestion run.

Takes the raw bytes of an uploaded CSV/XLSX file plus the transaction file,
company and warehouse it belongs to, and turns every valid row into a
TransactionRecord attached to a get-or-created Location and Item.

Rows are streamed: each distinct location path / item number is resolved
against the store the first time a row mentions it, so peak memory is bounded
by the number of distinct keys rather than the number of rows, and a store
failure leaves behind the records of every row processed before it.

Runs inline in the request handler; the function signature can be enqueued to a worker
later with zero changes.
"""

import logging
import threading
import time
from dataclasses import asdict, dataclass, field
from typing import Optional

from backend.core import graph_ops
from backend.core.association_linker import AssociationLinker
from backend.core.column_classifier import classify_columns
from backend.core.entity_cache import BatchEntityCache
from backend.core.entity_resolver import EntityResolver
from backend.core.errors import IngestCancelledError, IngestError, RecordCreationError
from backend.core.id_gen import TRANSACTION_RECORD_PREFIX, generate_id
from backend.core.ingestion_profile import DEFAULT_PROFILE, IngestionProfile
from backend.core.models import TransactionRecordModel
from backend.core.row_extractor import TransactionDraft, extract_row
from backend.core.row_source import open_row_source

logger = logging.getLogger(__name__)


@dataclass
class IngestStats:
    """Tracks ingestion statistics."""
    rows_read: int = 0
    rows_skipped: int = 0
    rows_dropped: int = 0
    location_columns: list[str] = field(default_factory=list)
    locations_created: int = 0
    locations_existing: int = 0
    items_created: int = 0
    items_existing: int = 0
    links_created: int = 0


@dataclass
class IngestResult:
    """Result of an ingestion run."""
    transaction_file_id: str
    status: str  # "completed" | "failed" | "cancelled"
    records_created: int = 0
    error: Optional[IngestError] = None
    stats: dict = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.error is None


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise IngestCancelledError("Ingestion cancelled")


def _create_record(
    draft: TransactionDraft,
    location_id: str,
    item_id: str,
    transaction_file_id: str,
    company_id: str,
    warehouse_id: str,
) -> str:
    record = TransactionRecordModel(
        record_id=generate_id(TRANSACTION_RECORD_PREFIX),
        company_id=company_id,
        warehouse_id=warehouse_id,
        location_id=location_id,
        item_id=item_id,
        transaction_file_id=transaction_file_id,
        transaction_type=draft.transaction_type,
        order_number=draft.order_number,
        description=draft.description,
        transaction_quantity=draft.transaction_quantity,
        completed_quantity=draft.completed_quantity,
        completed_date=draft.completed_date,
    )
    try:
        return graph_ops.create_transaction_record(record)
    except Exception as e:
        raise RecordCreationError(
            f"Failed to create transaction record for row {draft.row_number}: {e}"
        ) from e


def run_ingest(
    data: bytes,
    file_name: str,
    transaction_file_id: str,
    company_id: str,
    warehouse_id: str,
    profile: Optional[IngestionProfile] = None,
    cancel_event: Optional[threading.Event] = None,
) -> IngestResult:
    """Ingest one uploaded transaction file.

    Steps:
    1. Pick the row source from the file extension (fails before reading)
    2. Classify the header once into transaction and location columns
    3. Per row: extract the draft, cache its location/item keys and resolve
       each key the first time it is seen (get-or-create)
    4. Per row with both keys resolved: link location<->item (once per pair)
       and create the TransactionRecord; other rows are dropped uncounted
    5. Link the transaction file to every resolved location and item

    Returns the created-record count. The first fatal error stops the run and
    is returned with the partial count.
    """
    profile = profile or DEFAULT_PROFILE
    started = time.monotonic()
    stats = IngestStats()

    try:
        source = open_row_source(data, file_name, profile)
        header = source.open()
    except IngestError as e:
        logger.error(f"Cannot ingest {file_name}: {e}")
        return IngestResult(
            transaction_file_id=transaction_file_id,
            status="failed",
            error=e,
            stats=asdict(stats),
        )

    classification = classify_columns(header, profile)
    stats.location_columns = list(classification.location_columns)
    logger.info(
        f"Ingesting {file_name} into warehouse {warehouse_id}: "
        f"location columns {stats.location_columns}"
    )

    cache = BatchEntityCache()
    resolver = EntityResolver(company_id, warehouse_id)
    linker = AssociationLinker(transaction_file_id)
    records_created = 0
    status = "completed"
    error: Optional[IngestError] = None

    try:
        for row_number, row in enumerate(source.rows(), start=1):
            _check_cancelled(cancel_event)
            draft = extract_row(row, classification, profile, row_number)

            location = cache.location(draft.location_key, draft.location_name_path)
            item = cache.item(draft.item_key)
            resolver.ensure_location(location)
            resolver.ensure_item(item)

            if not (location.is_resolved and item.is_resolved):
                stats.rows_dropped += 1
                logger.debug(
                    f"Dropping row {row_number}: location '{draft.location_key}' "
                    f"or item '{draft.item_key}' did not resolve"
                )
                continue

            linker.link_location_item(location.resolved_id, item.resolved_id)
            _create_record(
                draft, location.resolved_id, item.resolved_id,
                transaction_file_id, company_id, warehouse_id,
            )
            records_created += 1

        _check_cancelled(cancel_event)
        for location_id in cache.resolved_location_ids():
            linker.link_file_location(location_id)
        for item_id in cache.resolved_item_ids():
            linker.link_file_item(item_id)

    except IngestCancelledError as e:
        status = "cancelled"
        error = e
        logger.warning(f"Ingestion of {file_name} cancelled after {records_created} records")
    except IngestError as e:
        status = "failed"
        error = e
        logger.error(f"Ingestion of {file_name} failed after {records_created} records: {e}")

    stats.rows_read = source.rows_read
    stats.rows_skipped = source.skipped_rows
    stats.locations_created = resolver.stats.locations_created
    stats.locations_existing = resolver.stats.locations_existing
    stats.items_created = resolver.stats.items_created
    stats.items_existing = resolver.stats.items_existing
    stats.links_created = linker.links_created

    logger.info(
        f"Ingestion of {file_name} {status}: {records_created} records, "
        f"{stats.rows_skipped} malformed rows, {stats.rows_dropped} unresolved rows "
        f"in {time.monotonic() - started:.2f}s"
    )
    return IngestResult(
        transaction_file_id=transaction_file_id,
        status=status,
        records_created=records_created,
        error=error,
        stats=asdict(stats),
    )

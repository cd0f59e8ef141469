"""Tests for the ingestion engine — in-memory graph_ops fake for unit testing."""

import threading
from datetime import datetime
from unittest.mock import MagicMock, patch

from backend.core.errors import (
    EntityResolutionError,
    FormatNotImplementedError,
    IngestCancelledError,
    RecordCreationError,
    SourceReadError,
    UnsupportedFormatError,
)
from backend.core.ingestion_engine import IngestResult, run_ingest
from backend.core.ingestion_profile import IngestionProfile
from backend.core.models import ItemModel
from tests.conftest import HEADER, make_csv, make_row, make_xlsx

COMPANY = "acme"
WAREHOUSE = "wh_1"


def _ingest(data: bytes, file_name: str = "upload.csv", tf_id: str = "tf_1", **kwargs) -> IngestResult:
    return run_ingest(
        data=data,
        file_name=file_name,
        transaction_file_id=tf_id,
        company_id=COMPANY,
        warehouse_id=WAREHOUSE,
        **kwargs,
    )


# ---------------------------------------------------------------------------
# Happy path
# ---------------------------------------------------------------------------

class TestSingleRow:
    def test_creates_location_item_and_record(self, fake_graph):
        result = _ingest(make_csv([make_row()]))

        assert result.ok
        assert result.status == "completed"
        assert result.records_created == 1

        loc = fake_graph.locations[(WAREHOUSE, "A/3")]
        assert loc.location_name_path == "Zone=A|Aisle=3"
        item = fake_graph.items[(COMPANY, "SKU-1")]

        record = fake_graph.records[0]
        assert record.location_id == loc.location_id
        assert record.item_id == item.item_id
        assert record.transaction_file_id == "tf_1"
        assert record.company_id == COMPANY
        assert record.warehouse_id == WAREHOUSE
        assert record.transaction_type == "PICK"
        assert record.order_number == "ORD-1"
        assert record.description == "Widget"
        assert record.transaction_quantity == 5
        assert record.completed_quantity == 5
        assert record.completed_date == datetime(2024, 1, 5)
        assert record.record_id.startswith("tr_")

    def test_links_written(self, fake_graph):
        _ingest(make_csv([make_row()]))
        loc_id = fake_graph.locations[(WAREHOUSE, "A/3")].location_id
        item_id = fake_graph.items[(COMPANY, "SKU-1")].item_id

        assert fake_graph.edges_of("LOCATION_ITEM") == {(loc_id, item_id)}
        assert fake_graph.edges_of("FILE_LOCATION") == {("tf_1", loc_id)}
        assert fake_graph.edges_of("FILE_ITEM") == {("tf_1", item_id)}
        assert fake_graph.edges_of("WAREHOUSE_ITEM") == {(WAREHOUSE, item_id)}

    def test_stats(self, fake_graph):
        result = _ingest(make_csv([make_row(), make_row(item="SKU-2")]))
        assert result.stats["rows_read"] == 2
        assert result.stats["rows_skipped"] == 0
        assert result.stats["rows_dropped"] == 0
        assert result.stats["location_columns"] == ["zone", "aisle"]
        assert result.stats["locations_created"] == 1
        assert result.stats["items_created"] == 2
        # 2 location<->item, 1 file<->location, 2 file<->item
        assert result.stats["links_created"] == 5

    def test_header_only_file(self, fake_graph):
        result = _ingest(make_csv([]))
        assert result.status == "completed"
        assert result.records_created == 0
        assert fake_graph.location_lookups == 0

    def test_empty_file(self, fake_graph):
        result = _ingest(b"")
        assert result.status == "completed"
        assert result.records_created == 0


class TestMinimalHeader:
    def test_nine_column_file(self, fake_graph):
        header = [
            "item number", "transaction type", "order number", "description",
            "transaction quantity", "completed date", "completed quantity", "zone", "aisle",
        ]
        row = ["SKU-1", "INBOUND", "PO-100", "restock", "10", "2024-01-05", "10", "A", "3"]

        result = _ingest(make_csv([row], header=header))

        assert result.status == "completed"
        assert result.records_created == 1
        assert result.stats["location_columns"] == ["zone", "aisle"]

        loc = fake_graph.locations[(WAREHOUSE, "A/3")]
        assert loc.location_name_path == "Zone=A|Aisle=3"
        item = fake_graph.items[(COMPANY, "SKU-1")]

        record = fake_graph.records[0]
        assert record.location_id == loc.location_id
        assert record.item_id == item.item_id
        assert record.transaction_type == "INBOUND"
        assert record.order_number == "PO-100"
        assert record.description == "restock"
        assert record.transaction_quantity == 10
        assert record.completed_quantity == 10
        assert record.completed_date == datetime(2024, 1, 5)


class TestXlsxIngestion:
    def test_xlsx_matches_csv_semantics(self, fake_graph):
        rows = [
            ["1", "PICK", "ORD-1", "SKU-1", "Widget", 5, datetime(2024, 1, 5), "jdoe", 4, "A", 3],
            ["2", "PUT", "ORD-2", "SKU-2", "Gadget", 2.0, None, None, 2, "A", 3],
        ]
        result = _ingest(make_xlsx(rows), file_name="upload.xlsx")

        assert result.status == "completed"
        assert result.records_created == 2
        assert (WAREHOUSE, "A/3") in fake_graph.locations
        first, second = fake_graph.records
        assert first.completed_date == datetime(2024, 1, 5)
        assert first.transaction_quantity == 5
        assert first.completed_quantity == 4
        assert second.transaction_quantity == 2
        assert second.completed_date is None


# ---------------------------------------------------------------------------
# Dedup and idempotence
# ---------------------------------------------------------------------------

class TestLookupBound:
    def test_one_lookup_per_distinct_key(self, fake_graph):
        rows = []
        for i in range(12):
            rows.append(make_row(
                item=f"SKU-{i % 3}",
                zone="A" if i % 2 else "B",
                row_id=str(i),
            ))
        result = _ingest(make_csv(rows))

        assert result.records_created == 12
        assert fake_graph.location_lookups == 2
        assert fake_graph.item_lookups == 3

    def test_pair_linked_once(self, fake_graph):
        rows = [make_row(row_id=str(i)) for i in range(5)]
        result = _ingest(make_csv(rows))
        assert result.records_created == 5
        assert len(fake_graph.edges_of("LOCATION_ITEM")) == 1


class TestReingest:
    def test_second_run_creates_only_records(self, fake_graph):
        data = make_csv([
            make_row(item="SKU-1", zone="A"),
            make_row(item="SKU-2", zone="B"),
        ])
        _ingest(data, tf_id="tf_1")
        locations = dict(fake_graph.locations)
        items = dict(fake_graph.items)
        location_items = fake_graph.edges_of("LOCATION_ITEM")
        warehouse_items = fake_graph.edges_of("WAREHOUSE_ITEM")

        result = _ingest(data, tf_id="tf_2")

        assert result.records_created == 2
        assert fake_graph.locations == locations
        assert fake_graph.items == items
        assert fake_graph.edges_of("LOCATION_ITEM") == location_items
        assert fake_graph.edges_of("WAREHOUSE_ITEM") == warehouse_items
        assert len(fake_graph.records) == 4
        assert result.stats["locations_created"] == 0
        assert result.stats["locations_existing"] == 2
        assert result.stats["items_created"] == 0
        assert result.stats["items_existing"] == 2

    def test_existing_item_not_linked_to_warehouse(self, fake_graph):
        fake_graph.items[(COMPANY, "SKU-1")] = ItemModel(
            item_id="itm_existing", company_id=COMPANY, name="SKU-1",
        )
        result = _ingest(make_csv([make_row(item="SKU-1")]))

        assert result.records_created == 1
        assert fake_graph.records[0].item_id == "itm_existing"
        assert fake_graph.edges_of("WAREHOUSE_ITEM") == set()


class TestSameLocationTwoItems:
    def test_one_location_two_items_two_links(self, fake_graph):
        result = _ingest(make_csv([
            make_row(item="SKU-1", row_id="1"),
            make_row(item="SKU-2", row_id="2"),
        ]))

        assert result.records_created == 2
        assert len(fake_graph.locations) == 1
        assert len(fake_graph.items) == 2
        assert len(fake_graph.edges_of("LOCATION_ITEM")) == 2


# ---------------------------------------------------------------------------
# Data quality
# ---------------------------------------------------------------------------

class TestDroppedRows:
    def test_empty_item_number_produces_no_record(self, fake_graph):
        result = _ingest(make_csv([
            make_row(item="SKU-1", row_id="1"),
            make_row(item="", row_id="2"),
            make_row(item="SKU-2", row_id="3"),
        ]))

        assert result.status == "completed"
        assert result.records_created == 2
        assert result.stats["rows_dropped"] == 1
        assert (COMPANY, "") not in fake_graph.items
        assert fake_graph.item_lookups == 2

    def test_empty_location_produces_no_record(self, fake_graph):
        result = _ingest(make_csv([
            make_row(zone="", aisle="", row_id="1"),
            make_row(row_id="2"),
        ]))

        assert result.records_created == 1
        assert result.stats["rows_dropped"] == 1
        assert fake_graph.location_lookups == 1

    def test_no_location_columns(self, fake_graph):
        header = HEADER[:9]
        result = _ingest(make_csv([make_row()[:9]], header=header))
        assert result.status == "completed"
        assert result.records_created == 0
        assert result.stats["location_columns"] == []

    def test_malformed_row_skipped(self, fake_graph):
        rows = [
            make_row(row_id="1"),
            make_row(row_id="2") + ["extra"],
            make_row(row_id="3")[:5],
            make_row(row_id="4"),
        ]
        result = _ingest(make_csv(rows))

        assert result.status == "completed"
        assert result.records_created == 2
        assert result.stats["rows_skipped"] == 2

    def test_oversized_field_skipped(self, fake_graph):
        rows = [
            make_row(item="SKU-1", row_id="1"),
            make_row(item="SKU-2", row_id="2"),
            make_row(item="SKU-3", row_id="3"),
        ]
        rows[1][4] = "x" * 200_000
        result = _ingest(make_csv(rows))

        assert result.status == "completed"
        assert result.records_created == 2
        assert result.stats["rows_skipped"] == 1
        assert (COMPANY, "SKU-2") not in fake_graph.items
        assert {r.description for r in fake_graph.records} == {"Widget"}

    def test_bad_numbers_and_dates_default(self, fake_graph):
        result = _ingest(make_csv([make_row(quantity="lots", completed_date="yesterday")]))
        assert result.records_created == 1
        record = fake_graph.records[0]
        assert record.transaction_quantity == 0
        assert record.completed_quantity == 0
        assert record.completed_date is None

    def test_profile_date_format(self, fake_graph):
        profile = IngestionProfile(profile_name="day_first", date_format="%d.%m.%Y")
        _ingest(make_csv([make_row(completed_date="05.01.2024")]), profile=profile)
        assert fake_graph.records[0].completed_date == datetime(2024, 1, 5)


# ---------------------------------------------------------------------------
# Failures
# ---------------------------------------------------------------------------

class TestFailures:
    def test_failure_on_third_location_keeps_partial_count(self, fake_graph):
        fake_graph.fail_location_create_at = 3
        rows = [make_row(zone=z, row_id=str(i)) for i, z in enumerate("ABCDE")]

        result = _ingest(make_csv(rows))

        assert result.status == "failed"
        assert isinstance(result.error, EntityResolutionError)
        assert result.records_created == 2
        assert len(fake_graph.records) == 2
        assert len(fake_graph.locations) == 2
        assert fake_graph.edges_of("FILE_LOCATION") == set()

    def test_record_failure_stops_run(self, fake_graph):
        fake_graph.fail_record_create = True
        result = _ingest(make_csv([make_row(), make_row(item="SKU-2")]))

        assert result.status == "failed"
        assert isinstance(result.error, RecordCreationError)
        assert result.records_created == 0

    def test_xls_not_implemented(self, fake_graph):
        result = _ingest(b"\xd0\xcf\x11\xe0", file_name="legacy.xls")

        assert result.status == "failed"
        assert isinstance(result.error, FormatNotImplementedError)
        assert result.records_created == 0
        assert fake_graph.location_lookups == 0

    def test_unsupported_extension(self, fake_graph):
        result = _ingest(b"a,b\n1,2\n", file_name="upload.txt")
        assert isinstance(result.error, UnsupportedFormatError)
        assert result.records_created == 0

    def test_corrupt_xlsx(self, fake_graph):
        result = _ingest(b"not a zip", file_name="upload.xlsx")
        assert result.status == "failed"
        assert isinstance(result.error, UnsupportedFormatError)

    @patch("backend.core.row_source.openpyxl.load_workbook")
    def test_xlsx_unreadable_mid_sheet_keeps_partial_count(self, mock_load, fake_graph):
        def sheet_rows(values_only):
            yield tuple(HEADER)
            yield tuple(make_row(item="SKU-1"))
            raise ValueError("invalid literal in sheet XML")

        wb = MagicMock()
        wb.worksheets = [MagicMock(iter_rows=sheet_rows)]
        mock_load.return_value = wb

        result = _ingest(b"PK", file_name="upload.xlsx")

        assert result.status == "failed"
        assert isinstance(result.error, SourceReadError)
        assert result.records_created == 1
        assert len(fake_graph.records) == 1
        wb.close.assert_called_once()


class TestCancellation:
    def test_cancelled_before_start(self, fake_graph):
        event = threading.Event()
        event.set()
        result = _ingest(make_csv([make_row()]), cancel_event=event)

        assert result.status == "cancelled"
        assert isinstance(result.error, IngestCancelledError)
        assert result.records_created == 0
        assert fake_graph.location_lookups == 0

    def test_cancelled_between_rows(self, fake_graph):
        event = threading.Event()
        create_record = fake_graph.create_transaction_record

        def create_then_cancel(record):
            record_id = create_record(record)
            event.set()
            return record_id

        fake_graph.create_transaction_record = create_then_cancel
        with fake_graph.install():
            result = _ingest(
                make_csv([make_row(row_id="1"), make_row(row_id="2")]),
                cancel_event=event,
            )

        assert result.status == "cancelled"
        assert result.records_created == 1
        assert fake_graph.edges_of("FILE_ITEM") == set()

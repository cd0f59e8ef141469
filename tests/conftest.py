"""Shared test fixtures for the inventory ingest test suite."""

import csv
import io
from unittest.mock import patch

import openpyxl
import pytest

from backend.core.models import ItemModel, LocationModel, TransactionFileModel

HEADER = [
    "ID", "Transaction Type", "Order Number", "Item Number", "Description",
    "Transaction Quantity", "Completed Date", "Completed By", "Completed Quantity",
    "Zone", "Aisle",
]


def make_row(
    item: str = "SKU-1",
    zone: str = "A",
    aisle: str = "3",
    row_id: str = "1",
    quantity: str = "5",
    completed_date: str = "2024-01-05",
) -> list[str]:
    """One data row matching HEADER."""
    return [
        row_id, "PICK", "ORD-1", item, "Widget",
        quantity, completed_date, "jdoe", quantity,
        zone, aisle,
    ]


def make_csv(rows: list[list], header: list[str] = HEADER) -> bytes:
    """Serialize a header + rows to UTF-8 CSV bytes."""
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buf.getvalue().encode("utf-8")


def make_xlsx(rows: list[list], header: list[str] = HEADER) -> bytes:
    """Build an in-memory workbook with the header on the first sheet."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Transactions"
    ws.append(header)
    for row in rows:
        ws.append(row)
    buf = io.BytesIO()
    wb.save(buf)
    wb.close()
    return buf.getvalue()


class FakeGraph:
    """In-memory stand-in for the graph_ops repository API.

    Counts lookups and can be told to fail on the n-th location creation.
    """

    def __init__(self):
        self.locations: dict[tuple[str, str], LocationModel] = {}
        self.items: dict[tuple[str, str], ItemModel] = {}
        self.transaction_files: dict[str, TransactionFileModel] = {}
        self.records = []
        self.edges: set[tuple[str, str, str]] = set()
        self.location_lookups = 0
        self.item_lookups = 0
        self.location_creates = 0
        self.fail_location_create_at = None
        self.fail_record_create = False
        self._seq = 0

    def _next_id(self, prefix: str) -> str:
        self._seq += 1
        return f"{prefix}{self._seq:04d}"

    # Locations

    def get_location_by_path(self, warehouse_id, location_path):
        self.location_lookups += 1
        return self.locations.get((warehouse_id, location_path))

    def create_location(self, warehouse_id, location_path, location_name_path=""):
        self.location_creates += 1
        if self.location_creates == self.fail_location_create_at:
            raise RuntimeError("graphd unavailable")
        loc = LocationModel(
            location_id=self._next_id("loc_"),
            warehouse_id=warehouse_id,
            location_path=location_path,
            location_name_path=location_name_path,
        )
        self.locations[(warehouse_id, location_path)] = loc
        return loc

    # Items

    def get_item_by_name(self, company_id, name):
        self.item_lookups += 1
        return self.items.get((company_id, name))

    def create_item(self, company_id, name):
        item = ItemModel(item_id=self._next_id("itm_"), company_id=company_id, name=name)
        self.items[(company_id, name)] = item
        return item

    # Files and records

    def create_transaction_file(self, tf):
        self.transaction_files[tf.transaction_file_id] = tf
        return tf.transaction_file_id

    def get_transaction_file(self, company_id, transaction_file_id):
        tf = self.transaction_files.get(transaction_file_id)
        if tf is None or tf.company_id != company_id:
            return None
        return tf

    def create_transaction_record(self, record):
        if self.fail_record_create:
            raise RuntimeError("write rejected")
        self.records.append(record)
        return record.record_id

    # Edges

    def _link(self, edge_type, src_id, dst_id):
        key = (edge_type, src_id, dst_id)
        if key in self.edges:
            return False
        self.edges.add(key)
        return True

    def link_location_item(self, location_id, item_id):
        return self._link("LOCATION_ITEM", location_id, item_id)

    def link_file_location(self, transaction_file_id, location_id):
        return self._link("FILE_LOCATION", transaction_file_id, location_id)

    def link_file_item(self, transaction_file_id, item_id):
        return self._link("FILE_ITEM", transaction_file_id, item_id)

    def link_warehouse_item(self, warehouse_id, item_id):
        return self._link("WAREHOUSE_ITEM", warehouse_id, item_id)

    def edges_of(self, edge_type: str) -> set[tuple[str, str]]:
        return {(src, dst) for kind, src, dst in self.edges if kind == edge_type}

    def install(self):
        return patch.multiple(
            "backend.core.graph_ops",
            get_location_by_path=self.get_location_by_path,
            create_location=self.create_location,
            get_item_by_name=self.get_item_by_name,
            create_item=self.create_item,
            create_transaction_file=self.create_transaction_file,
            get_transaction_file=self.get_transaction_file,
            create_transaction_record=self.create_transaction_record,
            link_location_item=self.link_location_item,
            link_file_location=self.link_file_location,
            link_file_item=self.link_file_item,
            link_warehouse_item=self.link_warehouse_item,
        )


@pytest.fixture
def fake_graph():
    graph = FakeGraph()
    with graph.install():
        yield graph

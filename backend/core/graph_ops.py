"""Inventory Data Access Layer — nGQL wrappers for locations, items, files,
transaction records and their association edges.

Uses graph_client.execute_query() which runs inside the inventory space.

VID format: FIXED_STRING(64). IDs are prefix + 32-char UUID7 hex (~36 chars).
nGQL rules: single-line statements, string values must be escaped.
Association edges are written at most once per (src, dst): every link_*
checks for the edge before inserting and reports whether it wrote.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from backend.core.graph_client import execute_query
from backend.core.id_gen import (
    ITEM_PREFIX,
    LOCATION_PREFIX,
    TRANSACTION_RECORD_PREFIX,
    generate_id,
)
from backend.core.models import (
    ItemModel,
    LocationModel,
    TransactionFileModel,
    TransactionRecordModel,
)

logger = logging.getLogger(__name__)

LOCATION_ITEM = "LOCATION_ITEM"
FILE_LOCATION = "FILE_LOCATION"
FILE_ITEM = "FILE_ITEM"
WAREHOUSE_ITEM = "WAREHOUSE_ITEM"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _escape(value: str) -> str:
    """Escape a string value for nGQL insertion (single-quoted)."""
    if value is None:
        return "''"
    s = str(value)
    s = s.replace("\\", "\\\\")
    s = s.replace("'", "\\'")
    s = s.replace("\n", "\\n")
    s = s.replace("\r", "\\r")
    return f"'{s}'"


def _fmt_dt(dt: Optional[datetime]) -> str:
    """Format a Python datetime as an nGQL datetime literal."""
    if dt is None:
        return "NULL"
    return f'datetime("{dt.strftime("%Y-%m-%dT%H:%M:%S.%f")}")'


def _fmt_opt_str(value: Optional[str]) -> str:
    """Format an optional string: NULL or escaped."""
    if value is None:
        return "NULL"
    return _escape(value)


def _opt_string(cell) -> Optional[str]:
    """Read an optional string column from a result row."""
    return None if cell.is_empty() or cell.is_null() else cell.as_string()


def _now() -> datetime:
    return datetime.now(timezone.utc)


_LOCATION_YIELD = (
    "YIELD id(vertex) AS vid, Location.warehouse_id AS wid, "
    "Location.location_path AS path, Location.location_name_path AS npath;"
)

_ITEM_YIELD = "YIELD id(vertex) AS vid, Item.company_id AS cid, Item.name AS name;"


def _parse_location_row(row) -> LocationModel:
    return LocationModel(
        location_id=row[0].as_string(),
        warehouse_id=row[1].as_string(),
        location_path=row[2].as_string(),
        location_name_path=_opt_string(row[3]) or "",
    )


def _parse_item_row(row) -> ItemModel:
    return ItemModel(
        item_id=row[0].as_string(),
        company_id=row[1].as_string(),
        name=row[2].as_string(),
    )


# ---------------------------------------------------------------------------
# Location operations
# ---------------------------------------------------------------------------

def get_location_by_path(warehouse_id: str, location_path: str) -> Optional[LocationModel]:
    """Find a location by warehouse + path. Returns None if not found."""
    ngql = (
        f'LOOKUP ON Location WHERE Location.warehouse_id == {_escape(warehouse_id)} '
        f'AND Location.location_path == {_escape(location_path)} '
        f'{_LOCATION_YIELD}'
    )
    result = execute_query(ngql)
    if result.row_size() == 0:
        return None
    if result.row_size() > 1:
        logger.warning(
            f"{result.row_size()} locations share path '{location_path}' "
            f"in warehouse {warehouse_id}; using the first"
        )
    return _parse_location_row(result.row_values(0))


def get_location(location_id: str) -> Optional[LocationModel]:
    """Fetch a single Location by VID."""
    ngql = f'FETCH PROP ON Location {_escape(location_id)} {_LOCATION_YIELD}'
    result = execute_query(ngql)
    if result.row_size() == 0:
        return None
    return _parse_location_row(result.row_values(0))


def create_location(
    warehouse_id: str,
    location_path: str,
    location_name_path: str = "",
) -> LocationModel:
    """Insert a new Location vertex. Hierarchy lives in the path string."""
    if not location_path:
        raise ValueError("location path is required")
    location_id = generate_id(LOCATION_PREFIX)
    now = _now()
    ngql = (
        f'INSERT VERTEX Location(warehouse_id, location_path, location_name_path, created_at, updated_at) '
        f'VALUES {_escape(location_id)}:({_escape(warehouse_id)}, {_escape(location_path)}, '
        f'{_escape(location_name_path)}, {_fmt_dt(now)}, {_fmt_dt(now)});'
    )
    execute_query(ngql)
    return LocationModel(
        location_id=location_id,
        warehouse_id=warehouse_id,
        location_path=location_path,
        location_name_path=location_name_path,
        created_at=now,
        updated_at=now,
    )


# ---------------------------------------------------------------------------
# Item operations
# ---------------------------------------------------------------------------

def get_item_by_name(company_id: str, name: str) -> Optional[ItemModel]:
    """Find an item by company + exact (case-sensitive) name."""
    ngql = (
        f'LOOKUP ON Item WHERE Item.company_id == {_escape(company_id)} '
        f'AND Item.name == {_escape(name)} '
        f'{_ITEM_YIELD}'
    )
    result = execute_query(ngql)
    if result.row_size() == 0:
        return None
    return _parse_item_row(result.row_values(0))


def get_item(item_id: str) -> Optional[ItemModel]:
    """Fetch a single Item by VID."""
    ngql = f'FETCH PROP ON Item {_escape(item_id)} {_ITEM_YIELD}'
    result = execute_query(ngql)
    if result.row_size() == 0:
        return None
    return _parse_item_row(result.row_values(0))


def create_item(company_id: str, name: str) -> ItemModel:
    """Insert a new company-scoped Item vertex."""
    if not name:
        raise ValueError("item name is required")
    item_id = generate_id(ITEM_PREFIX)
    now = _now()
    ngql = (
        f'INSERT VERTEX Item(company_id, name, created_at, updated_at) '
        f'VALUES {_escape(item_id)}:({_escape(company_id)}, {_escape(name)}, '
        f'{_fmt_dt(now)}, {_fmt_dt(now)});'
    )
    execute_query(ngql)
    return ItemModel(item_id=item_id, company_id=company_id, name=name, created_at=now, updated_at=now)


# ---------------------------------------------------------------------------
# TransactionFile operations
# ---------------------------------------------------------------------------

def create_transaction_file(tf: TransactionFileModel) -> str:
    """Insert a TransactionFile vertex. Returns the VID."""
    if not tf.file_name:
        raise ValueError("transaction file name is required")
    ngql = (
        f'INSERT VERTEX TransactionFile(company_id, warehouse_id, file_name, file_extension, '
        f'file_path_url, created_at) '
        f'VALUES {_escape(tf.transaction_file_id)}:({_escape(tf.company_id)}, '
        f'{_escape(tf.warehouse_id)}, {_escape(tf.file_name)}, {_fmt_opt_str(tf.file_extension)}, '
        f'{_fmt_opt_str(tf.file_path_url)}, {_fmt_dt(tf.created_at or _now())});'
    )
    execute_query(ngql)
    return tf.transaction_file_id


def get_transaction_file(company_id: str, transaction_file_id: str) -> Optional[TransactionFileModel]:
    """Fetch a TransactionFile by VID, scoped to its company."""
    ngql = (
        f'FETCH PROP ON TransactionFile {_escape(transaction_file_id)} '
        f'YIELD id(vertex) AS vid, TransactionFile.company_id AS cid, '
        f'TransactionFile.warehouse_id AS wid, TransactionFile.file_name AS fname, '
        f'TransactionFile.file_extension AS ext, TransactionFile.file_path_url AS url;'
    )
    result = execute_query(ngql)
    if result.row_size() == 0:
        return None
    row = result.row_values(0)
    tf = TransactionFileModel(
        transaction_file_id=row[0].as_string(),
        company_id=row[1].as_string(),
        warehouse_id=row[2].as_string(),
        file_name=row[3].as_string(),
        file_extension=_opt_string(row[4]),
        file_path_url=_opt_string(row[5]),
    )
    if tf.company_id != company_id:
        return None
    return tf


# ---------------------------------------------------------------------------
# TransactionRecord operations
# ---------------------------------------------------------------------------

def create_transaction_record(record: TransactionRecordModel) -> str:
    """Insert a TransactionRecord vertex. Returns the VID."""
    r = record
    record_id = r.record_id or generate_id(TRANSACTION_RECORD_PREFIX)
    ngql = (
        f'INSERT VERTEX TransactionRecord(company_id, warehouse_id, location_id, item_id, '
        f'transaction_file_id, transaction_type, order_number, description, '
        f'transaction_quantity, completed_quantity, completed_date, created_at) '
        f'VALUES {_escape(record_id)}:({_escape(r.company_id)}, {_escape(r.warehouse_id)}, '
        f'{_escape(r.location_id)}, {_escape(r.item_id)}, {_fmt_opt_str(r.transaction_file_id)}, '
        f'{_escape(r.transaction_type)}, {_escape(r.order_number)}, {_escape(r.description)}, '
        f'{int(r.transaction_quantity)}, {int(r.completed_quantity)}, '
        f'{_fmt_dt(r.completed_date)}, {_fmt_dt(r.created_at or _now())});'
    )
    execute_query(ngql)
    return record_id


# ---------------------------------------------------------------------------
# Association edge operations
# ---------------------------------------------------------------------------

def edge_exists(edge_type: str, src_id: str, dst_id: str) -> bool:
    """Check whether an association edge src->dst already exists."""
    ngql = (
        f'FETCH PROP ON {edge_type} {_escape(src_id)}->{_escape(dst_id)} '
        f'YIELD rank(edge) AS rk;'
    )
    result = execute_query(ngql)
    return result.row_size() > 0


def _link(edge_type: str, src_id: str, dst_id: str) -> bool:
    """Insert an association edge unless it exists. Returns True if written."""
    if not src_id or not dst_id:
        raise ValueError(f"{edge_type} link needs both endpoints, got {src_id!r} -> {dst_id!r}")
    if edge_exists(edge_type, src_id, dst_id):
        return False
    ngql = (
        f'INSERT EDGE {edge_type}(created_at) '
        f'VALUES {_escape(src_id)}->{_escape(dst_id)}:({_fmt_dt(_now())});'
    )
    execute_query(ngql)
    return True


def _unlink(edge_type: str, src_id: str, dst_id: str) -> None:
    ngql = f'DELETE EDGE {edge_type} {_escape(src_id)}->{_escape(dst_id)};'
    execute_query(ngql)


def link_location_item(location_id: str, item_id: str) -> bool:
    """Create LOCATION_ITEM edge from Location to Item."""
    return _link(LOCATION_ITEM, location_id, item_id)


def unlink_location_item(location_id: str, item_id: str) -> None:
    _unlink(LOCATION_ITEM, location_id, item_id)


def link_file_location(transaction_file_id: str, location_id: str) -> bool:
    """Create FILE_LOCATION edge from TransactionFile to Location."""
    return _link(FILE_LOCATION, transaction_file_id, location_id)


def unlink_file_location(transaction_file_id: str, location_id: str) -> None:
    _unlink(FILE_LOCATION, transaction_file_id, location_id)


def link_file_item(transaction_file_id: str, item_id: str) -> bool:
    """Create FILE_ITEM edge from TransactionFile to Item."""
    return _link(FILE_ITEM, transaction_file_id, item_id)


def unlink_file_item(transaction_file_id: str, item_id: str) -> None:
    _unlink(FILE_ITEM, transaction_file_id, item_id)


def link_warehouse_item(warehouse_id: str, item_id: str) -> bool:
    """Create WAREHOUSE_ITEM edge from Warehouse to Item."""
    return _link(WAREHOUSE_ITEM, warehouse_id, item_id)


def unlink_warehouse_item(warehouse_id: str, item_id: str) -> None:
    _unlink(WAREHOUSE_ITEM, warehouse_id, item_id)

"""NebulaGraph connection pool, query helpers and schema bootstrap.

Provides a singleton connection pool initialized on app startup. All queries
are scoped to the configured inventory space.
"""

import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from nebula3.Config import Config as NebulaConfig
from nebula3.gclient.net import ConnectionPool, Session
from nebula3.data.ResultSet import ResultSet

from backend.core.config import settings

logger = logging.getLogger(__name__)

_pool: Optional[ConnectionPool] = None

# Tags, edges and the indexes LOOKUP needs. The space itself is provisioned
# outside the app (CREATE SPACE needs a heartbeat cycle before USE succeeds).
SCHEMA_STATEMENTS = [
    "CREATE TAG IF NOT EXISTS Location(warehouse_id string, location_path string, "
    "location_name_path string, created_at datetime, updated_at datetime);",
    "CREATE TAG IF NOT EXISTS Item(company_id string, name string, "
    "created_at datetime, updated_at datetime);",
    "CREATE TAG IF NOT EXISTS TransactionFile(company_id string, warehouse_id string, "
    "file_name string, file_extension string, file_path_url string, created_at datetime);",
    "CREATE TAG IF NOT EXISTS TransactionRecord(company_id string, warehouse_id string, "
    "location_id string, item_id string, transaction_file_id string, transaction_type string, "
    "order_number string, description string, transaction_quantity int, "
    "completed_quantity int, completed_date datetime, created_at datetime);",
    "CREATE EDGE IF NOT EXISTS LOCATION_ITEM(created_at datetime);",
    "CREATE EDGE IF NOT EXISTS FILE_LOCATION(created_at datetime);",
    "CREATE EDGE IF NOT EXISTS FILE_ITEM(created_at datetime);",
    "CREATE EDGE IF NOT EXISTS WAREHOUSE_ITEM(created_at datetime);",
    "CREATE TAG INDEX IF NOT EXISTS location_by_path ON Location(warehouse_id(64), location_path(256));",
    "CREATE TAG INDEX IF NOT EXISTS item_by_name ON Item(company_id(64), name(256));",
    "CREATE TAG INDEX IF NOT EXISTS transaction_file_by_company ON TransactionFile(company_id(64));",
    "CREATE TAG INDEX IF NOT EXISTS transaction_record_by_file ON TransactionRecord(transaction_file_id(64));",
]


def init_graph_pool() -> ConnectionPool:
    """Initialize the NebulaGraph connection pool. Call once at app startup."""
    global _pool
    config = NebulaConfig()
    config.max_connection_pool_size = settings.nebula_pool_size
    pool = ConnectionPool()
    ok = pool.init(
        [(settings.nebula_graphd_host, settings.nebula_graphd_port)],
        config,
    )
    if not ok:
        raise RuntimeError(
            f"Failed to connect to NebulaGraph at "
            f"{settings.nebula_graphd_host}:{settings.nebula_graphd_port}"
        )
    _pool = pool
    logger.info(f"NebulaGraph connection pool initialized (space={settings.nebula_space})")
    return _pool


def close_graph_pool() -> None:
    """Close the connection pool. Call at app shutdown."""
    global _pool
    if _pool:
        _pool.close()
        _pool = None
        logger.info("NebulaGraph connection pool closed")


def get_pool() -> ConnectionPool:
    """Get the active connection pool."""
    if _pool is None:
        raise RuntimeError("NebulaGraph pool not initialized. Call init_graph_pool() first.")
    return _pool


@contextmanager
def _space_session() -> Iterator[Session]:
    """Borrow a session already switched to the inventory space."""
    session = get_pool().get_session(settings.nebula_user, settings.nebula_password)
    try:
        use_result = session.execute(f"USE {settings.nebula_space}")
        if not use_result.is_succeeded():
            raise RuntimeError(f"Failed to USE {settings.nebula_space}: {use_result.error_msg()}")
        yield session
    finally:
        session.release()


def execute_query(ngql: str) -> ResultSet:
    """Execute one nGQL statement in the inventory space."""
    with _space_session() as session:
        result = session.execute(ngql)
        if not result.is_succeeded():
            raise RuntimeError(f"nGQL query failed: {result.error_msg()}\nQuery: {ngql}")
        return result


def ensure_schema() -> None:
    """Create the tags, edges and indexes the ingestion pipeline relies on."""
    with _space_session() as session:
        for ngql in SCHEMA_STATEMENTS:
            result = session.execute(ngql)
            if not result.is_succeeded():
                raise RuntimeError(f"Schema statement failed: {result.error_msg()}\nQuery: {ngql}")
    logger.info(f"Inventory schema ensured ({len(SCHEMA_STATEMENTS)} statements)")


def check_connection() -> bool:
    """Check if NebulaGraph is reachable."""
    try:
        result = execute_query("SHOW TAGS")
        return result.is_succeeded()
    except Exception:
        return False

"""UUID v7 generator for time-sortable vertex IDs."""

from uuid_extensions import uuid7

LOCATION_PREFIX = "loc_"
ITEM_PREFIX = "itm_"
TRANSACTION_FILE_PREFIX = "tf_"
TRANSACTION_RECORD_PREFIX = "tr_"


def generate_id(prefix: str = "") -> str:
    """Generate a UUID v7 hex string with an optional type prefix.

    Returns e.g. "loc_01926f4e8b7d7a8e9c0d1e2f3a4b5c6d", which fits the
    FIXED_STRING(64) VIDs of the inventory space.
    """
    uid = uuid7().hex
    return f"{prefix}{uid}" if prefix else uid

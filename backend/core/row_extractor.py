"""Row Extractor — turns one canonical row into a TransactionDraft.

Data-quality problems never fail a row here: missing or non-numeric
quantities become 0 and an unparseable completed date becomes None.
"""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from backend.core.column_classifier import ColumnClassification
from backend.core.ingestion_profile import DEFAULT_PROFILE, IngestionProfile

LOCATION_KEY_SEPARATOR = "/"
LOCATION_NAME_SEPARATOR = "|"

_LEADING_INT = re.compile(r"^[+-]?\d+")
_WORD_START = re.compile(r"(?<!\w)\w")


@dataclass
class TransactionDraft:
    """A transaction row waiting for its location and item to resolve."""
    row_number: int
    transaction_type: str
    order_number: str
    description: str
    transaction_quantity: int
    completed_quantity: int
    completed_date: Optional[datetime]
    location_key: str
    location_name_path: str
    item_key: str


def title_case(name: str) -> str:
    """Upper-case the first letter of each word, leave the rest untouched.

    A word starts after any character that is not a letter, digit or
    underscore, so "bin-level" becomes "Bin-Level".
    """
    return _WORD_START.sub(lambda m: m.group(0).upper(), name)


def build_location_path(
    row: dict[str, str],
    location_columns: tuple[str, ...],
) -> tuple[str, str]:
    """Build (LocationKey, LocationNamePath) from the row's location columns.

    Empty values are skipped, so an empty optional level and an absent one
    produce the same key.
    """
    path_parts = []
    name_parts = []
    for column in location_columns:
        value = (row.get(column) or "").strip()
        if not value:
            continue
        path_parts.append(value)
        name_parts.append(f"{title_case(column)}={value}")
    return LOCATION_KEY_SEPARATOR.join(path_parts), LOCATION_NAME_SEPARATOR.join(name_parts)


def parse_quantity(value: Optional[str]) -> int:
    """Leading-integer parse: "12" -> 12, "12.5" -> 12, "abc" -> 0."""
    if not value:
        return 0
    match = _LEADING_INT.match(value.strip())
    if not match:
        return 0
    return int(match.group(0))


def parse_completed_date(value: Optional[str], date_format: str) -> Optional[datetime]:
    if not value or not value.strip():
        return None
    try:
        return datetime.strptime(value.strip(), date_format)
    except ValueError:
        return None


def extract_row(
    row: dict[str, str],
    classification: ColumnClassification,
    profile: IngestionProfile = DEFAULT_PROFILE,
    row_number: int = 0,
) -> TransactionDraft:
    """Extract the transaction draft and its derived keys from one row."""
    def field(column: str) -> str:
        return (row.get(column) or "").strip()

    location_key, location_name_path = build_location_path(row, classification.location_columns)

    return TransactionDraft(
        row_number=row_number,
        transaction_type=field(profile.transaction_type_column),
        order_number=field(profile.order_number_column),
        description=field(profile.description_column),
        transaction_quantity=parse_quantity(field(profile.transaction_quantity_column)),
        completed_quantity=parse_quantity(field(profile.completed_quantity_column)),
        completed_date=parse_completed_date(field(profile.completed_date_column), profile.date_format),
        location_key=location_key,
        location_name_path=location_name_path,
        item_key=field(profile.item_column),
    )

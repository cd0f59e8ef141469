"""Ingestion Profile — the column vocabulary and value layouts of a run.

A profile tells the ingestion engine:
1. Which header names are fixed transaction attributes (everything else is
   treated as a location-hierarchy column)
2. Which of those columns carry the item number, quantities, dates, etc.
3. The single date layout accepted for the completed date

Profiles are immutable so one instance can be shared by every run. The
built-in vocabulary is DEFAULT_PROFILE; alternates are loaded from YAML by
profile_loader.
"""

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

DEFAULT_KNOWN_COLUMNS = frozenset({
    "id",
    "transaction type",
    "order number",
    "item number",
    "description",
    "transaction quantity",
    "completed date",
    "completed by",
    "completed quantity",
})


def canonical_header(name) -> str:
    """Canonical form of a header cell: trimmed and lower-cased."""
    if name is None:
        return ""
    return str(name).strip().lower()


class IngestionProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    profile_name: str = "default"
    known_columns: frozenset[str] = DEFAULT_KNOWN_COLUMNS

    item_column: str = "item number"
    transaction_type_column: str = "transaction type"
    order_number_column: str = "order number"
    description_column: str = "description"
    transaction_quantity_column: str = "transaction quantity"
    completed_quantity_column: str = "completed quantity"
    completed_date_column: str = "completed date"

    # strptime layout, equivalent to YYYY-MM-DD
    date_format: str = "%Y-%m-%d"

    @field_validator("known_columns", mode="before")
    @classmethod
    def _canonical_known_columns(cls, value):
        return frozenset(canonical_header(v) for v in value if canonical_header(v))

    @field_validator(
        "item_column",
        "transaction_type_column",
        "order_number_column",
        "description_column",
        "transaction_quantity_column",
        "completed_quantity_column",
        "completed_date_column",
    )
    @classmethod
    def _canonical_field_column(cls, value: str) -> str:
        return canonical_header(value)

    @model_validator(mode="after")
    def _field_columns_are_known(self):
        missing = [c for c in self.field_columns() if c not in self.known_columns]
        if missing:
            raise ValueError(
                f"Field columns {missing} are not part of known_columns; "
                f"they would be classified as location columns"
            )
        return self

    def field_columns(self) -> list[str]:
        """Columns the row extractor reads by name."""
        return [
            self.item_column,
            self.transaction_type_column,
            self.order_number_column,
            self.description_column,
            self.transaction_quantity_column,
            self.completed_quantity_column,
            self.completed_date_column,
        ]


DEFAULT_PROFILE = IngestionProfile()

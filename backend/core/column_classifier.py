"""Column Classifier — splits a header into transaction and location columns.

Any column outside the profile's known vocabulary is a location-hierarchy
column, in left-to-right header order. A misspelled known column therefore
becomes a location level; the classifier cannot tell the two apart.
"""

from dataclasses import dataclass

from backend.core.ingestion_profile import DEFAULT_PROFILE, IngestionProfile


@dataclass(frozen=True)
class ColumnClassification:
    """Header partition for one ingestion run."""
    header: tuple[str, ...]
    transaction_columns: tuple[str, ...]
    location_columns: tuple[str, ...]

    def is_location_column(self, column: str) -> bool:
        return column in self.location_columns


def classify_columns(
    header: list[str],
    profile: IngestionProfile = DEFAULT_PROFILE,
) -> ColumnClassification:
    """Partition a canonical header list using the profile's vocabulary."""
    known = profile.known_columns
    transaction_cols = tuple(h for h in header if h in known)
    location_cols = tuple(h for h in header if h not in known)
    return ColumnClassification(
        header=tuple(header),
        transaction_columns=transaction_cols,
        location_columns=location_cols,
    )

"""Ingestion error hierarchy.

Fatal failures of an ingestion run are raised as subclasses of IngestError so
the orchestrator can stop the run and report the first one together with the
partial record count. Row-level data problems (malformed rows, unparseable
quantities or dates) are recovered where they occur and never raised.
"""


class IngestError(Exception):
    """Base exception for all ingestion failures."""


class UnsupportedFormatError(IngestError):
    """Raised when the file extension has no row source."""


class FormatNotImplementedError(IngestError, NotImplementedError):
    """Raised for formats that are recognised but deliberately not parsed."""


class SourceReadError(IngestError):
    """Raised when the file stops being readable partway through."""


class ProfileError(IngestError):
    """Raised for a missing or invalid ingestion profile."""


class EntityResolutionError(IngestError):
    """Raised when a location or item cannot be looked up or created."""


class LinkError(IngestError):
    """Raised when an association edge cannot be checked or written."""


class RecordCreationError(IngestError):
    """Raised when a transaction record cannot be written."""


class IngestCancelledError(IngestError):
    """Raised when a run is cancelled between rows."""

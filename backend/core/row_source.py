"""Tabular Row Source — reads CSV / XLSX bytes into canonical rows.

Every format is exposed through the same small interface:

    source = open_row_source(data, "upload.xlsx")
    header = source.open()          # first physical row, canonicalized
    for row in source.rows():       # lazy, single pass
        ...                         # {canonical header: trimmed value}

The first physical row is always the header. Rows whose field count does not
match the header, and CSV records the parser rejects, are skipped (counted in
``skipped_rows``), never raised. A file that stops being readable partway
through raises SourceReadError.
"""

import codecs
import csv
import io
import logging
import zipfile
import zlib
from datetime import date, time
from pathlib import PurePath
from typing import Any, Iterator, Optional

import chardet
import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from backend.core.errors import (
    FormatNotImplementedError,
    SourceReadError,
    UnsupportedFormatError,
)
from backend.core.ingestion_profile import DEFAULT_PROFILE, IngestionProfile, canonical_header

logger = logging.getLogger(__name__)


_END = object()


class RowSource:
    """Base row source. Subclasses implement _iter_raw_rows().

    _iter_raw_rows() yields None for a record the format parser rejected but
    could step past; rows() counts it as a skipped row. Failures that end the
    stream are raised as SourceReadError.
    """

    extensions: tuple[str, ...] = ()

    def __init__(self, data: bytes, profile: IngestionProfile = DEFAULT_PROFILE):
        self.data = data
        self.profile = profile
        self.header: list[str] = []
        self.rows_read = 0
        self.skipped_rows = 0
        self._raw: Optional[Iterator[Optional[list[str]]]] = None
        self._consumed = False

    def _iter_raw_rows(self) -> Iterator[Optional[list[str]]]:
        raise NotImplementedError

    def _fit_row(self, values: list[str], width: int) -> list[str]:
        """Hook for formats that can legitimately omit trailing cells."""
        return values

    def open(self) -> list[str]:
        """Consume the header row and return the canonical header list."""
        if self._raw is None:
            self._raw = self._iter_raw_rows()
            first = next(self._raw, _END)
            if first is None:
                raise SourceReadError("Header row could not be parsed")
            self.header = [canonical_header(c) for c in first] if first is not _END else []
        return self.header

    def rows(self) -> Iterator[dict[str, str]]:
        """Yield data rows as {canonical header: trimmed value}."""
        if self._consumed:
            raise RuntimeError(f"{type(self).__name__} is single-pass and was already read")
        self._consumed = True
        header = self.open()
        if not header:
            return
        width = len(header)

        for line_number, values in enumerate(self._raw, start=2):
            if values is None:
                self.skipped_rows += 1
                logger.debug(f"Skipping record {line_number}: could not be parsed")
                continue
            if not any(v.strip() for v in values):
                continue
            values = self._fit_row(values, width)
            if len(values) != width:
                self.skipped_rows += 1
                logger.debug(
                    f"Skipping line {line_number}: {len(values)} fields, header has {width}"
                )
                continue
            self.rows_read += 1
            yield {h: v.strip() for h, v in zip(header, values)}


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

def _decode_text(data: bytes) -> str:
    """Decode CSV bytes: UTF-8 (with or without BOM), else chardet's guess."""
    if data.startswith(codecs.BOM_UTF8):
        return data[len(codecs.BOM_UTF8):].decode("utf-8", errors="replace")
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError:
        detected = chardet.detect(data[:10000])
        encoding = detected.get("encoding") or "latin-1"
        logger.info(f"CSV is not UTF-8, decoding as {encoding}")
        try:
            return data.decode(encoding, errors="replace")
        except LookupError:
            return data.decode("latin-1")


class CsvRowSource(RowSource):
    extensions = (".csv",)

    def _iter_raw_rows(self) -> Iterator[Optional[list[str]]]:
        reader = csv.reader(io.StringIO(_decode_text(self.data), newline=""))
        failed_at = None
        while True:
            try:
                values = next(reader)
            except StopIteration:
                return
            except csv.Error as e:
                # the reader drops the offending record and resumes on the next line
                if reader.line_num == failed_at:
                    raise SourceReadError(f"CSV unreadable at line {reader.line_num}: {e}") from e
                failed_at = reader.line_num
                logger.debug(f"Unparseable CSV record ending at line {reader.line_num}: {e}")
                values = None
            yield values


# ---------------------------------------------------------------------------
# XLSX
# ---------------------------------------------------------------------------

# What openpyxl raises for damaged archives or sheet XML, at load time or
# lazily while a read-only sheet is iterated
_XLSX_READ_ERRORS = (
    InvalidFileException,
    zipfile.BadZipFile,
    zlib.error,
    SyntaxError,
    EOFError,
    OSError,
    KeyError,
    ValueError,
)


def _cell_text(value: Any, date_format: str) -> str:
    """Render an openpyxl cell value as the text a CSV export would hold."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, date):
        return value.strftime(date_format)
    if isinstance(value, time):
        return value.isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


class XlsxRowSource(RowSource):
    """Reads the first worksheet of an .xlsx workbook.

    Trailing empty cells are dropped, so only rows with more populated
    columns than the header count as malformed; shorter rows are padded.
    A sheet that breaks mid-read ends the stream with SourceReadError.
    """

    extensions = (".xlsx",)

    def _iter_raw_rows(self) -> Iterator[Optional[list[str]]]:
        try:
            wb = openpyxl.load_workbook(io.BytesIO(self.data), read_only=True, data_only=True)
        except _XLSX_READ_ERRORS as e:
            raise UnsupportedFormatError(f"Not a readable XLSX workbook: {e}") from e

        try:
            if not wb.worksheets:
                logger.warning("Workbook has no sheets")
                return
            sheet_rows = wb.worksheets[0].iter_rows(values_only=True)
            row_number = 0
            while True:
                try:
                    cells = next(sheet_rows, None)
                except _XLSX_READ_ERRORS as e:
                    raise SourceReadError(f"Worksheet unreadable after row {row_number}: {e}") from e
                if cells is None:
                    return
                row_number += 1
                values = [_cell_text(v, self.profile.date_format) for v in cells]
                while values and not values[-1].strip():
                    values.pop()
                yield values
        finally:
            wb.close()

    def _fit_row(self, values: list[str], width: int) -> list[str]:
        if len(values) < width:
            return values + [""] * (width - len(values))
        return values


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------

ROW_SOURCES: dict[str, type[RowSource]] = {
    ext: cls for cls in (CsvRowSource, XlsxRowSource) for ext in cls.extensions
}


# Recognised, but parsing them would be lossy
NOT_IMPLEMENTED_EXTENSIONS = frozenset({".xls"})


def file_extension(file_name: str) -> str:
    return PurePath(file_name).suffix.lower()


def open_row_source(
    data: bytes,
    file_name: str,
    profile: IngestionProfile = DEFAULT_PROFILE,
) -> RowSource:
    """Pick the row source for a declared file name.

    Raises before any byte is parsed when the extension is not supported.
    """
    ext = file_extension(file_name)
    if ext in NOT_IMPLEMENTED_EXTENSIONS:
        raise FormatNotImplementedError(f"{ext} parsing not implemented")
    source_cls = ROW_SOURCES.get(ext)
    if source_cls is None:
        raise UnsupportedFormatError(f"Unsupported file extension: '{ext or file_name}'")
    return source_cls(data, profile)

from __future__ import annotations

import asyncio
import logging
import struct
import zipfile
import zlib
from collections.abc import Iterable, Sequence
from pathlib import Path

import openpyxl
import xlrd
import xlrd.compdoc
from openpyxl.utils.exceptions import InvalidFileException

from birthday_sms.date_logic import normalize_birth_date
from birthday_sms.models import IngestResult, Record, SkippedRow

LOGGER = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = {".xlsx", ".xls"}

MISSING_NAME = "missing name"
INVALID_DATE = "missing/invalid date of birth"


class RosterUnreadableError(Exception):
    pass


def _is_blank(value: object) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _xls_cell_value(cell: xlrd.sheet.Cell, datemode: int) -> object:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        try:
            return xlrd.xldate.xldate_as_datetime(cell.value, datemode)
        except (xlrd.xldate.XLDateError, ValueError, OverflowError):
            return None
    return cell.value


# ElementTree and lxml parse errors both derive from SyntaxError; truncated
# deflate streams surface as zlib.error.
_XLSX_READ_ERRORS = (
    InvalidFileException,
    zipfile.BadZipFile,
    zlib.error,
    SyntaxError,
    KeyError,
    OSError,
    ValueError,
)
_XLS_READ_ERRORS = (
    xlrd.XLRDError,
    xlrd.compdoc.CompDocError,
    struct.error,
    IndexError,
    OSError,
    ValueError,
)


def _read_xlsx_rows(path: Path) -> list[tuple[object, ...]]:
    # Read-only workbooks parse sheet XML lazily, so iteration can fail too.
    try:
        workbook = openpyxl.load_workbook(path, data_only=True, read_only=True)
        try:
            if not workbook.worksheets:
                raise RosterUnreadableError("Roster file contains no worksheets")
            sheet = workbook.worksheets[0]
            LOGGER.info("Processing worksheet: %s", sheet.title)
            # Exporters often write a stale dimension tag; read-only mode trusts it.
            sheet.reset_dimensions()
            return [tuple(row) for row in sheet.iter_rows(min_row=1, values_only=True)]
        finally:
            workbook.close()
    except _XLSX_READ_ERRORS as exc:
        raise RosterUnreadableError(f"Failed to read roster file: {exc}") from exc


def _read_xls_rows(path: Path) -> list[tuple[object, ...]]:
    try:
        workbook = xlrd.open_workbook(str(path))
        try:
            if workbook.nsheets == 0:
                raise RosterUnreadableError("Roster file contains no worksheets")
            sheet = workbook.sheet_by_index(0)
            LOGGER.info("Processing worksheet: %s", sheet.name)
            return [
                tuple(_xls_cell_value(cell, workbook.datemode) for cell in sheet.row(index))
                for index in range(sheet.nrows)
            ]
        finally:
            workbook.release_resources()
    except _XLS_READ_ERRORS as exc:
        raise RosterUnreadableError(f"Failed to read roster file: {exc}") from exc


def read_sheet_rows(path: Path) -> list[tuple[object, ...]]:
    """Return every row of the first worksheet, top row first."""
    if not path.exists():
        raise RosterUnreadableError(f"Roster file not found at path: {path}")

    extension = path.suffix.lower()
    if extension not in SUPPORTED_EXTENSIONS:
        raise RosterUnreadableError(f"Invalid file format: {extension or '(none)'}. Expected .xlsx or .xls")

    LOGGER.info("Reading roster file: %s", path)
    if extension == ".xls":
        return _read_xls_rows(path)
    return _read_xlsx_rows(path)


def parse_rows(rows: Iterable[Sequence[object]]) -> IngestResult:
    records: list[Record] = []
    skipped: list[SkippedRow] = []

    for row_number, row in enumerate(rows, start=1):
        if all(_is_blank(value) for value in row):
            continue

        raw_name = row[0] if len(row) > 0 else None
        raw_birth_date = row[1] if len(row) > 1 else None

        if not isinstance(raw_name, str) or not raw_name.strip():
            LOGGER.warning("Row %s: %s, skipping row", row_number, MISSING_NAME)
            skipped.append(SkippedRow(row_number=row_number, reason=MISSING_NAME))
            continue

        name = raw_name.strip()
        birth_date = normalize_birth_date(raw_birth_date)
        if birth_date is None:
            LOGGER.warning('Row %s: %s for "%s", skipping row', row_number, INVALID_DATE, name)
            skipped.append(SkippedRow(row_number=row_number, reason=INVALID_DATE, name=name))
            continue

        records.append(Record(name=name, birth_date=birth_date, row_number=row_number))

    LOGGER.info("Parsing complete: %s valid records, %s rows skipped", len(records), len(skipped))
    return IngestResult(records=records, skipped=skipped)


async def ingest_roster(path: Path) -> IngestResult:
    rows = await asyncio.to_thread(read_sheet_rows, Path(path))
    return parse_rows(rows)

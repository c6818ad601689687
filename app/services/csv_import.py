"""CSV parsing and row validation for customer / product bulk import."""

from __future__ import annotations

import csv
import io
import logging
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".csv"}

CUSTOMER_COLUMNS = ("name", "email")
PRODUCT_COLUMNS = ("name", "category", "price", "cost")

M = TypeVar("M", bound=BaseModel)


class CsvImportError(ValueError):
    """The uploaded file cannot be used as an import table."""


def decode_upload(content: bytes) -> str:
    try:
        # utf-8-sig strips the BOM spreadsheet exports like to add
        return content.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CsvImportError("File is not valid UTF-8 text") from exc


class CsvRecord(dict[str, str]):
    """One data row keyed by header, remembering the file line it starts on."""

    def __init__(self, cells: Iterable[tuple[str, str]], line_no: int) -> None:
        super().__init__(cells)
        self.line_no = line_no


def parse_csv(text: str) -> list[CsvRecord]:
    """Parse a header row plus data rows into dicts keyed by header.

    Quoted fields may contain commas, newlines and doubled quotes. Blank
    lines are skipped. Headers are stripped and lower-cased; short rows are
    padded with empty strings and extra cells dropped. Each record keeps the
    physical line it starts on, so errors can point at the right place even
    after skipped lines or multi-line cells.
    """
    reader = csv.reader(io.StringIO(text))
    rows: list[tuple[int, list[str]]] = []
    start = 1
    for row in reader:
        if any(cell.strip() for cell in row):
            rows.append((start, row))
        start = reader.line_num + 1
    if not rows:
        raise CsvImportError("CSV file is empty")

    headers = [h.strip().lower() for h in rows[0][1]]
    if not any(headers):
        raise CsvImportError("CSV header row is missing")

    records = []
    for line_no, row in rows[1:]:
        cells = [c.strip() for c in row] + [""] * (len(headers) - len(row))
        records.append(CsvRecord(zip(headers, cells), line_no))
    return records


def require_columns(rows: list[dict[str, str]], columns: Iterable[str]) -> None:
    if not rows:
        raise CsvImportError("CSV file has a header but no data rows")
    missing = [c for c in columns if c not in rows[0]]
    if missing:
        raise CsvImportError(f"Missing required columns: {', '.join(missing)}")


def validate_rows(
    rows: Iterable[Mapping[str, Any]],
    schema: type[M],
    first_row: int = 1,
) -> tuple[list[M], list[str]]:
    """Validate each row against ``schema``.

    Empty cells are treated as absent so schema defaults apply. Invalid rows
    are reported as ``"Row N: ..."`` messages instead of failing the batch.
    N is the file line for :class:`CsvRecord` rows, otherwise the position
    counted from ``first_row``.
    """
    valid: list[M] = []
    errors: list[str] = []
    for index, row in enumerate(rows, start=first_row):
        row_no = getattr(row, "line_no", index)
        data = {k: v for k, v in row.items() if v not in ("", None)}
        try:
            valid.append(schema.model_validate(data))
        except ValidationError as exc:
            message = _first_error(exc)
            logger.warning("Skipping %s row %d: %s", schema.__name__, row_no, message)
            errors.append(f"Row {row_no}: {message}")
    return valid, errors


def _first_error(exc: ValidationError) -> str:
    err = exc.errors()[0]
    loc = ".".join(str(p) for p in err.get("loc", ()))
    return f"{loc}: {err.get('msg')}" if loc else str(err.get("msg"))

"""
Spreadsheet parsing.

Turns an uploaded byte buffer into a Table: the first sheet only, read as an
array of arrays, row 0 as headers and everything after it as rows. Cells keep
the type the source gives them; nothing is coerced here.
"""
import csv
import io
import logging
from typing import Any, Iterable, List, Tuple

import pandas as pd

from core.errors import ParseError
from models.processors.cell_processor import RawCellProcessor, TextCellProcessor
from models.structure.table import CellValue, Table

logger = logging.getLogger("sheetboard.parser")

XLSX_MAGIC = b"PK\x03\x04"
CSV_SHEET_NAME = "Sheet1"

Grid = List[List[CellValue]]

_raw_cells = RawCellProcessor()
_text_cells = TextCellProcessor()


def parse(raw: bytes) -> Table:
    if not raw:
        raise ParseError("Empty buffer is not a spreadsheet")

    if raw.startswith(XLSX_MAGIC):
        sheet_name, grid = _read_workbook(raw)
    else:
        sheet_name, grid = _read_delimited(raw)

    table = _to_table(sheet_name, grid)
    logger.debug(f"Parsed sheet '{sheet_name}': {len(table.headers)} headers, {table.row_count()} rows")
    return table


def _read_workbook(raw: bytes) -> Tuple[str, Grid]:
    try:
        sheets = pd.read_excel(io.BytesIO(raw), sheet_name=None, header=None, engine="openpyxl")
    except Exception as e:
        raise ParseError(f"Not a readable workbook: {e}") from e

    if not sheets:
        raise ParseError("Workbook contains no sheets")

    # first sheet by position; the rest are discarded
    sheet_name, frame = next(iter(sheets.items()))
    grid = _frame_to_grid(frame)
    return str(sheet_name), grid


def _read_delimited(raw: bytes) -> Tuple[str, Grid]:
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ParseError("Unsupported or corrupt spreadsheet format") from e

    if not text.strip():
        return CSV_SHEET_NAME, []

    # rows may be wider or narrower than the header line
    try:
        records = list(csv.reader(io.StringIO(text, newline="")))
    except csv.Error as e:
        raise ParseError(f"Not a readable delimited file: {e}") from e

    return CSV_SHEET_NAME, [[_text_cells.process(value) for value in record] for record in records]


def _frame_to_grid(frame: pd.DataFrame) -> Grid:
    return [
        [_raw_cells.process(value) for value in row]
        for row in frame.astype(object).itertuples(index=False, name=None)
    ]


def _trim(row: Iterable[Any]) -> List[CellValue]:
    cells = list(row)
    while cells and cells[-1] is None:
        cells.pop()
    return cells


def _used_range(grid: Grid) -> Grid:
    """Cuts the grid down to the block that starts at the first non-blank row and column."""
    rows = [_trim(row) for row in grid]

    while rows and not rows[0]:
        rows.pop(0)
    while rows and not rows[-1]:
        rows.pop()

    offsets = [
        next(index for index, cell in enumerate(row) if cell is not None)
        for row in rows if row
    ]
    first_column = min(offsets, default=0)

    return [row[first_column:] for row in rows]


def _to_table(sheet_name: str, grid: Grid) -> Table:
    rows = _used_range(grid)

    if not rows:
        return Table(sheet_name=sheet_name)

    return Table(sheet_name=sheet_name, headers=rows[0], rows=rows[1:])

import uuid
from typing import List, Tuple

from core import repository
from core.errors import ProjectionError, ValidationError
from models.processors.cell_processor import LabelProcessor, NumericProcessor
from models.structure.page import paginate
from models.structure.projection import RowPage, SeriesPoint
from models.structure.table import CellValue, Table

_labels = LabelProcessor()
_numbers = NumericProcessor(default=0)


def resolve_column(table: Table, column: str) -> int:
    """Position of the first header whose label equals `column`."""
    for index, header in enumerate(table.headers):
        if header is not None and _labels.process(header) == column:
            return index
    raise ProjectionError("unknown column", details={"column": column})


def project(table: Table, category_column: str, value_column: str) -> List[SeriesPoint]:
    category_index = resolve_column(table, category_column)
    value_index = resolve_column(table, value_column)

    points: List[SeriesPoint] = []
    for row in table.rows:
        label = _cell_at(row, category_index)
        value = _cell_at(row, value_index)

        # rows missing either selected cell are dropped, never zero-filled
        if label is None or value is None:
            continue

        points.append(SeriesPoint(label=_labels.process(label), value=_numbers.process(value)))

    return points


def default_axes(table: Table) -> Tuple[str | None, str | None]:
    if len(table.headers) < 2:
        return None, None
    first, second = table.headers[0], table.headers[1]
    return (
        _labels.process(first) if first is not None else None,
        _labels.process(second) if second is not None else None
    )


def paginate_rows(table: Table, limit: int | None = None, skip: int = 0) -> RowPage:
    try:
        page = paginate(table.rows, limit=limit, skip=skip)
    except ValueError as e:
        raise ValidationError(str(e))

    return RowPage(headers=table.headers, rows=page.items, total_count=page.total_count, has_more=page.has_more)


async def project_record(
        record_id: uuid.UUID,
        owner_id: uuid.UUID,
        category_column: str | None = None,
        value_column: str | None = None
) -> Tuple[str, str, List[SeriesPoint]]:
    record = await repository.find_by_id(record_id, owner_id)

    default_category, default_value = default_axes(record.table)
    category_column = category_column or default_category
    value_column = value_column or default_value

    if not category_column or not value_column:
        raise ProjectionError("unknown column", details={"reason": "no axes selected"})

    return category_column, value_column, project(record.table, category_column, value_column)


def _cell_at(row: List[CellValue], index: int) -> CellValue:
    return row[index] if index < len(row) else None

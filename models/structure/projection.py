from typing import List, Union
from pydantic import BaseModel, ConfigDict, Field, StrictInt

from models.structure.table import CellValue


class SeriesPoint(BaseModel):
    label: str
    value: Union[StrictInt, float]


class RowPage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    headers: List[CellValue]
    rows: List[List[CellValue]]
    total_count: int = Field(alias="totalCount")
    has_more: bool = Field(alias="hasMore")

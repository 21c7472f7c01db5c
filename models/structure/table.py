from typing import List, Union
from pydantic import BaseModel, ConfigDict, Field, StrictBool, StrictFloat, StrictInt, StrictStr

# A single spreadsheet cell. None is an absent (blank) cell.
CellValue = Union[StrictBool, StrictInt, StrictFloat, StrictStr, None]


class Table(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    # --- Header ---
    sheet_name: str = Field(default="", alias="sheetName")
    headers: List[CellValue] = Field(default_factory=list)

    # --- Body ---
    rows: List[List[CellValue]] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not self.headers and not self.rows

    def row_count(self) -> int:
        return len(self.rows)

import math
import re
from datetime import date, datetime, time
from typing import Any

import numpy as np
import pandas as pd

from models.interfaces.strategy_interface import ICellProcessor
from models.structure.table import CellValue

_INT_RE = re.compile(r"^[+-]?\d+$")
_DECIMAL_RE = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")


def _is_missing(value: Any) -> bool:
    if value is None or value is pd.NaT or value is pd.NA:
        return True
    return isinstance(value, float) and math.isnan(value)


def _narrow_number(number: float) -> int | float:
    if number.is_integer():
        return int(number)
    return number


class RawCellProcessor(ICellProcessor):
    """
    Normalizes a value read from a workbook (python, numpy or pandas scalar)
    into a CellValue. Blank cells become None, integral floats become ints
    and dates are rendered as ISO-8601 text.
    """

    def process(self, value: Any) -> CellValue:
        if isinstance(value, np.datetime64):
            value = pd.Timestamp(value)
        elif isinstance(value, np.generic):
            value = value.item()

        if _is_missing(value):
            return None
        if isinstance(value, (datetime, date, time)):
            return value.isoformat()
        if isinstance(value, (bool, int, str)):
            return value
        if isinstance(value, float):
            if not math.isfinite(value):
                return None
            return _narrow_number(value)
        return str(value)


class TextCellProcessor(ICellProcessor):
    """Types a delimited-text field the way a spreadsheet application would."""

    def process(self, value: Any) -> CellValue:
        if _is_missing(value):
            return None

        text = str(value)
        stripped = text.strip()
        if not stripped:
            return None

        lowered = stripped.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False

        if _INT_RE.match(stripped):
            return int(stripped)
        if _DECIMAL_RE.match(stripped):
            number = float(stripped)
            if math.isfinite(number):
                return _narrow_number(number)

        return text


class LabelProcessor(ICellProcessor):
    """String coercion used for category labels and header matching."""

    def process(self, value: Any) -> str:
        if isinstance(value, bool):
            return "true" if value else "false"
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        return str(value)


class NumericProcessor(ICellProcessor):
    """Numeric coercion. Anything that is not a finite number yields the default."""

    def __init__(self, default: int | float = 0):
        self.default = default

    def process(self, value: Any) -> int | float:
        if isinstance(value, bool):
            return int(value)

        if isinstance(value, (int, float)):
            number = value
        elif isinstance(value, str):
            stripped = value.strip()
            if _INT_RE.match(stripped):
                return int(stripped)
            if not _DECIMAL_RE.match(stripped):
                return self.default
            number = float(stripped)
        else:
            return self.default

        if isinstance(number, float) and not math.isfinite(number):
            return self.default
        return number

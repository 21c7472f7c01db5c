from abc import ABC, abstractmethod
from typing import Any


class ICellProcessor(ABC):
    """Turns one cell into the shape a particular consumer needs."""

    @abstractmethod
    def process(self, value: Any) -> Any:
        pass

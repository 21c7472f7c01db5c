import uuid
from typing import Dict, Hashable, Set
from collections import defaultdict

from core.errors import ConflictError


class BaseIndex:
    def __init__(self, field_name: str):
        self.field_name = field_name

    def add(self, record_id: uuid.UUID, value: Hashable) -> None:
        """add record to index"""
        raise NotImplementedError

    def remove(self, record_id: uuid.UUID, value: Hashable) -> None:
        """delete record from index"""
        raise NotImplementedError

    def clear(self) -> None:
        raise NotImplementedError


class HashIndex(BaseIndex):
    """
    Hash Index - value -> set of record ids, O(1) exact lookups
    """

    def __init__(self, field_name: str):
        super().__init__(field_name)
        self._data: Dict[Hashable, Set[uuid.UUID]] = defaultdict(set)

    def add(self, record_id: uuid.UUID, value: Hashable) -> None:
        if value is None:
            return
        self._data[value].add(record_id)

    def remove(self, record_id: uuid.UUID, value: Hashable) -> None:
        if value is None or value not in self._data:
            return

        self._data[value].discard(record_id)
        if not self._data[value]:
            del self._data[value]

    def lookup(self, value: Hashable) -> Set[uuid.UUID]:
        return self._data.get(value, set()).copy()

    def keys(self) -> Set[Hashable]:
        return set(self._data.keys())

    def count(self, value: Hashable) -> int:
        return len(self._data.get(value, ()))

    def clear(self) -> None:
        self._data.clear()


class UniqueIndex(BaseIndex):
    """
    Unique Index - value -> exactly one record id.
    Adding a second id under a taken value raises ConflictError.
    """

    def __init__(self, field_name: str):
        super().__init__(field_name)
        self._data: Dict[Hashable, uuid.UUID] = {}

    def add(self, record_id: uuid.UUID, value: Hashable) -> None:
        current = self._data.get(value)
        if current is not None and current != record_id:
            raise ConflictError(f"Conflict: '{self.field_name}' value {value!r} already exists.")
        self._data[value] = record_id

    def remove(self, record_id: uuid.UUID, value: Hashable) -> None:
        if self._data.get(value) == record_id:
            del self._data[value]

    def lookup(self, value: Hashable) -> uuid.UUID | None:
        return self._data.get(value)

    def __contains__(self, value: Hashable) -> bool:
        return value in self._data

    def clear(self) -> None:
        self._data.clear()

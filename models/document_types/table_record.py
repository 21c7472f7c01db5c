import uuid
import json
import hashlib
from datetime import datetime, timezone
from typing import Tuple
from pydantic import BaseModel, ConfigDict, Field, model_validator

from models.structure.table import Table


class TableRecord(BaseModel):
    """
    A parsed spreadsheet owned by one user.

    (owner_id, file_name) is the natural key: a repeat upload of the same
    name replaces the table in place and keeps the id.
    """

    model_config = ConfigDict(populate_by_name=True)

    # --- Header ---
    id: uuid.UUID = Field(default_factory=uuid.uuid4, alias="_id")
    file_name: str
    owner_id: uuid.UUID

    # --- Body ---
    table: Table

    # --- Footer ---
    table_hash: str | None = None
    upload_time: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime | None = None
    version: int = 1

    def _update_table_hash(self) -> None:
        table_str = json.dumps(self.table.model_dump(by_alias=True), sort_keys=True).encode('utf-8')
        self.table_hash = hashlib.sha256(table_str).hexdigest()

    @model_validator(mode='after')
    def _run_hash_validator(self) -> 'TableRecord':
        self._update_table_hash()
        return self

    def key(self) -> Tuple[uuid.UUID, str]:
        return self.owner_id, self.file_name

    def replace_table(self, table: Table, now: datetime) -> bool:
        """Overwrites the table in place. Returns True when the content changed."""
        previous_hash = self.table_hash

        self.table = table
        self.upload_time = now
        self.updated_at = now
        self.version += 1
        self._update_table_hash()

        return self.table_hash != previous_hash

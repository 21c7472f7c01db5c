import uuid
import logging
from datetime import datetime
from pydantic import ValidationError

from models.document_types.table_record import TableRecord
from models.structure.table import Table

logger = logging.getLogger("sheetboard.models")


def create_record(owner_id: uuid.UUID, file_name: str, table: Table, now: datetime) -> TableRecord | None:
    try:
        new_record = TableRecord(
            owner_id=owner_id,
            file_name=file_name,
            table=table,
            upload_time=now,
            created_at=now,
            updated_at=now
        )
        return new_record
    except ValidationError as e:
        logger.error(f"Pydantic validation error creating TableRecord: {e}")
        return None

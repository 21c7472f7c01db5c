import re
import uuid
import asyncio
import logging

from core import parser
from core import repository
from core.constants import main_values
from core.errors import ParseError, ValidationError
from models.api import RecordSummary

logger = logging.getLogger("sheetboard.ingestion")

_PATH_SEPARATORS = re.compile(r"[\\/]")


def normalize_file_name(file_name: str | None) -> str:
    """Keeps the final path component of a client-supplied name, trimmed."""
    if not file_name:
        return ""
    return _PATH_SEPARATORS.split(file_name)[-1].strip()


async def ingest(owner_id: uuid.UUID, file_name: str | None, raw: bytes | None) -> RecordSummary:
    """
    Validates an upload, parses it and upserts it under (owner_id, file_name).
    The first failing check wins. Only the summary view leaves this layer.
    """
    name = normalize_file_name(file_name)
    if not raw or not name:
        raise ValidationError("file required")

    if len(raw) > main_values.MAX_UPLOAD_BYTES:
        raise ValidationError("file too large", details={"max_bytes": main_values.MAX_UPLOAD_BYTES})

    try:
        table = await asyncio.to_thread(parser.parse, raw)
    except ParseError as e:
        logger.info(f"Rejected upload '{name}' from {owner_id}: {e.message}")
        raise ValidationError("unparseable file", details={"reason": e.message}) from e

    if table.is_empty():
        raise ValidationError("no data")

    record = await repository.upsert_record(owner_id, name, table)
    return RecordSummary.from_record(record)

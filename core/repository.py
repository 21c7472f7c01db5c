import uuid
import json
import logging

from datetime import datetime, timezone
from typing import List

from core import wal
from core import state
from core.errors import NotFoundError, ValidationError
from core.constants.main_values import STORAGE_FILE, WAL_FILE
from models.document_types.table_record import TableRecord
from models.models_init.record_init import create_record as init_record
from models.structure.page import Page, paginate
from models.structure.table import Table

logger = logging.getLogger("sheetboard.repository")

RECORD_NOT_FOUND = "Excel file not found"
OWNER_NOT_FOUND = "User not found"


async def upsert_record(owner_id: uuid.UUID, file_name: str, table: Table) -> TableRecord:
    """
    Find-or-create on (owner_id, file_name). The lookup, the WAL append and
    the in-memory write all happen under one hold of db_lock, so concurrent
    uploads of the same name can never produce two records.
    """
    async with state.db_lock:
        # an owner deleted while this upload was queued on the lock gets nothing
        if owner_id not in state.db_users_by_id:
            raise NotFoundError(OWNER_NOT_FOUND)

        now = datetime.now(timezone.utc)
        record_id = state.db_record_keys.lookup((owner_id, file_name))

        if record_id is None:
            new_record = init_record(owner_id=owner_id, file_name=file_name, table=table, now=now)
            if new_record is None:
                raise ValidationError("Error creating record (pydantic validation failed).")

            wal_op = {"op": "create_record", "record": new_record.model_dump(by_alias=True, mode="json")}
            await wal.log_to_wal(wal_op)
            _index_record(new_record)

            logger.info(f"Record created: {new_record.id} ({file_name}) for owner {owner_id}")
            return new_record

        record = state.db_records_by_id[record_id]

        wal_op = {
            "op": "replace_record",
            "record_id": str(record_id),
            "table": table.model_dump(by_alias=True, mode="json"),
            "upload_time": now.isoformat()
        }
        await wal.log_to_wal(wal_op)
        changed = record.replace_table(table, now)

        logger.info(f"Record replaced: {record.id} ({file_name}), content changed: {changed}")
        return record


async def find_by_owner(owner_id: uuid.UUID, limit: int | None = None, skip: int = 0) -> Page:
    async with state.db_lock:
        owned = _records_of(owner_id)

    return _page(_newest_first(owned), limit, skip)


async def find_latest_by_owner(owner_id: uuid.UUID) -> TableRecord | None:
    async with state.db_lock:
        owned = _records_of(owner_id)

    if not owned:
        return None
    return _newest_first(owned)[0]


async def find_by_id(record_id: uuid.UUID, owner_id: uuid.UUID) -> TableRecord:
    async with state.db_lock:
        return _owned_record(record_id, owner_id)


async def delete_by_id(record_id: uuid.UUID, owner_id: uuid.UUID) -> TableRecord:
    async with state.db_lock:
        record = _owned_record(record_id, owner_id)

        wal_op = {"op": "delete_record", "record_id": str(record_id)}
        await wal.log_to_wal(wal_op)
        _unindex_record(record)

    logger.info(f"Record deleted: {record_id}")
    return record


async def delete_all_by_owner(owner_id: uuid.UUID) -> int:
    async with state.db_lock:
        return await _cascade_owner_records(owner_id)


async def _cascade_owner_records(owner_id: uuid.UUID) -> int:
    """Caller must hold db_lock."""
    if not state.db_records_by_owner.count(owner_id):
        return 0

    wal_op = {"op": "delete_owner_records", "owner_id": str(owner_id)}
    await wal.log_to_wal(wal_op)
    removed = _drop_owner_records(owner_id)

    logger.info(f"Cascade removed {removed} records of owner {owner_id}")
    return removed


async def find_all(limit: int | None = None, skip: int = 0) -> Page:
    async with state.db_lock:
        records = list(state.db_records_by_id.values())

    return _page(_newest_first(records), limit, skip)


async def count_all() -> int:
    async with state.db_lock:
        return len(state.db_records_by_id)


async def count_by_owner(owner_id: uuid.UUID) -> int:
    async with state.db_lock:
        return state.db_records_by_owner.count(owner_id)


async def distinct_owners() -> List[uuid.UUID]:
    async with state.db_lock:
        return list(state.db_records_by_owner.keys())


async def wipe_all_data():
    async with state.db_lock:
        state.db_records_by_id.clear()
        state.db_record_keys.clear()
        state.db_records_by_owner.clear()
        state.db_users_by_id.clear()
        state.db_user_emails.clear()

        with open(WAL_FILE, 'w') as f:
            f.truncate(0)

        empty_state = {"users": [], "records": []}
        with open(STORAGE_FILE, 'w', encoding='utf-8') as f:
            json.dump(empty_state, f)

    logger.info("All users and records wiped")
    return True


def _owned_record(record_id: uuid.UUID, owner_id: uuid.UUID) -> TableRecord:
    record = state.db_records_by_id.get(record_id)

    # a foreign record must look exactly like a missing one
    if record is None or record.owner_id != owner_id:
        raise NotFoundError(RECORD_NOT_FOUND)
    return record


def _records_of(owner_id: uuid.UUID) -> List[TableRecord]:
    return [state.db_records_by_id[record_id] for record_id in state.db_records_by_owner.lookup(owner_id)]


def _newest_first(records: List[TableRecord]) -> List[TableRecord]:
    return sorted(records, key=lambda r: r.upload_time, reverse=True)


def _page(records: List[TableRecord], limit: int | None, skip: int) -> Page:
    try:
        return paginate(records, limit=limit, skip=skip)
    except ValueError as e:
        raise ValidationError(str(e))


def _index_record(record: TableRecord) -> None:
    state.db_record_keys.add(record.id, record.key())
    state.db_records_by_id[record.id] = record
    state.db_records_by_owner.add(record.id, record.owner_id)


def _unindex_record(record: TableRecord) -> None:
    state.db_record_keys.remove(record.id, record.key())
    state.db_records_by_owner.remove(record.id, record.owner_id)
    state.db_records_by_id.pop(record.id, None)


def _drop_owner_records(owner_id: uuid.UUID) -> int:
    owned = _records_of(owner_id)
    for record in owned:
        _unindex_record(record)
    return len(owned)

import os
import json
import uuid
import asyncio
import logging
from datetime import datetime

from core import state
from core.errors import SheetBoardError
from core.constants.main_values import WAL_FILE, STORAGE_FILE
from models.document_types.table_record import TableRecord
from models.structure.table import Table
from models.types.account import AccountObject

logger = logging.getLogger("sheetboard.wal")


async def log_to_wal(operation: dict):
    log_entry = json.dumps(operation, default=str) + "\n"

    try:
        async with state.wal_lock:
            await asyncio.to_thread(_write_wal, log_entry)
    except OSError as e:
        logger.critical(f"WAL write failed: {e}")
        raise SheetBoardError(f"Database WAL write error: {e}")


def _write_wal(log_entry: str):
    """Synchronous helper for writing to WAL"""
    with open(WAL_FILE, 'a', encoding='utf-8') as f:
        f.write(log_entry)
        f.flush()
        os.fsync(f.fileno())


def _apply_op_to_memory(op: dict):
    from core.repository import _index_record, _unindex_record, _drop_owner_records
    from core.users import _index_user, _unindex_user

    op_type = op.get("op")
    try:
        if op_type == "create_user":
            _index_user(AccountObject.model_validate(op["user"]))

        elif op_type == "delete_user":
            user = state.db_users_by_id.get(uuid.UUID(op["user_id"]))
            if user:
                _unindex_user(user)

        elif op_type == "create_record":
            _index_record(TableRecord.model_validate(op["record"]))

        elif op_type == "replace_record":
            record = state.db_records_by_id.get(uuid.UUID(op["record_id"]))
            if record:
                record.replace_table(
                    Table.model_validate(op["table"]),
                    datetime.fromisoformat(op["upload_time"])
                )

        elif op_type == "delete_record":
            record = state.db_records_by_id.get(uuid.UUID(op["record_id"]))
            if record:
                _unindex_record(record)

        elif op_type == "delete_owner_records":
            _drop_owner_records(uuid.UUID(op["owner_id"]))

        else:
            logger.warning(f"Unknown WAL op skipped: {op_type}")

    except Exception as e:
        logger.error(f"Failed to apply WAL op: {op_type}. Error: {e}")


def load_snapshot():
    from core.repository import _index_record
    from core.users import _index_user

    if not os.path.exists(STORAGE_FILE):
        logger.info(f"File {STORAGE_FILE} not found. Starting with an empty DB.")
        return

    logger.info(f"Loading data from {STORAGE_FILE}")
    try:
        with open(STORAGE_FILE, 'r', encoding='utf-8') as f:
            raw_data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.critical(f"Error while loading snapshot: {e}")
        raise

    for u_item in raw_data.get("users", []):
        try:
            _index_user(AccountObject.model_validate(u_item))
        except Exception as e:
            logger.error(f"Failed to load user: {e}")

    for r_item in raw_data.get("records", []):
        try:
            _index_record(TableRecord.model_validate(r_item))
        except Exception as e:
            logger.error(f"Failed to load record: {e}")

    logger.info(f"Loaded: {len(state.db_users_by_id)} users, {len(state.db_records_by_id)} records.")


def recover_from_wal():
    if not os.path.exists(WAL_FILE):
        return

    logger.info(f"Replaying WAL file ({WAL_FILE})")
    replayed_ops = 0
    with open(WAL_FILE, 'r', encoding='utf-8') as f:
        for line in f:
            if not line.strip():
                continue

            try:
                op = json.loads(line)
            except json.JSONDecodeError as e:
                logger.error(f"Failed to replay WAL entry: {line!r}. Error: {e}")
                continue

            _apply_op_to_memory(op)
            replayed_ops += 1

    logger.info(f"WAL replay complete. {replayed_ops} operations replayed.")


def perform_checkpoint():
    logger.info("Checkpointing...")
    try:
        data_to_save = {
            "users": [u.model_dump(by_alias=True, mode="json") for u in state.db_users_by_id.values()],
            "records": [r.model_dump(by_alias=True, mode="json") for r in state.db_records_by_id.values()]
        }

        temp_file = f"{STORAGE_FILE}.tmp"
        with open(temp_file, 'w', encoding='utf-8') as f:
            json.dump(data_to_save, f)

        os.replace(temp_file, STORAGE_FILE)

        with open(WAL_FILE, 'w') as f:
            f.truncate(0)

        logger.info("Checkpoint successful.")
    except OSError as e:
        logger.critical(f"Error while saving DB: {e}")

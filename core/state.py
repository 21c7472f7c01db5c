import asyncio
from typing import Dict
import uuid
from models.document_types.table_record import TableRecord
from models.types.account import AccountObject
from core.indexes import HashIndex, UniqueIndex

db_records_by_id: Dict[uuid.UUID, TableRecord] = {}
db_users_by_id: Dict[uuid.UUID, AccountObject] = {}

# (owner_id, file_name) -> record id
db_record_keys = UniqueIndex("owner_id+file_name")
# owner_id -> record ids
db_records_by_owner = HashIndex("owner_id")
# lower-cased email -> user id
db_user_emails = UniqueIndex("email")

db_lock = asyncio.Lock()
wal_lock = asyncio.Lock()


def reset() -> None:
    """Drops every in-memory structure. Files on disk are left alone."""
    global db_lock, wal_lock

    db_records_by_id.clear()
    db_users_by_id.clear()
    db_record_keys.clear()
    db_records_by_owner.clear()
    db_user_emails.clear()

    db_lock = asyncio.Lock()
    wal_lock = asyncio.Lock()

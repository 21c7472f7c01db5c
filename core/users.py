import uuid
import asyncio
import logging
from datetime import datetime
from typing import Dict, List

from core import wal
from core import state
from core import repository
from core.constants import main_values
from core.errors import AuthenticationError, ConflictError, NotFoundError, ValidationError
from core.security import verify_password
from models.structure.page import Page
from models.types.account import AccountObject, NewUser

logger = logging.getLogger("sheetboard.users")

USER_NOT_FOUND = "User not found"


async def register_user(name: str, email: str, password: str) -> AccountObject:
    role = "admin" if email.strip().lower() in main_values.ADMIN_EMAILS else "user"

    # bcrypt is slow on purpose, keep it off the event loop and outside the lock
    account = await asyncio.to_thread(NewUser, name, email, password, role)

    async with state.db_lock:
        if account.email in state.db_user_emails:
            raise ConflictError("User already exists")

        wal_op = {"op": "create_user", "user": account.model_dump(by_alias=True, mode="json")}
        await wal.log_to_wal(wal_op)
        _index_user(account)

    logger.info(f"User registered: {account.id} ({account.role})")
    return account


async def authenticate(email: str, password: str) -> AccountObject:
    async with state.db_lock:
        user_id = state.db_user_emails.lookup(email.strip().lower())
        account = state.db_users_by_id.get(user_id) if user_id else None

    if account is None:
        raise AuthenticationError("Invalid email or password")

    matches = await asyncio.to_thread(verify_password, password, account.password_hash)
    if not matches:
        raise AuthenticationError("Invalid email or password")

    return account


async def get_user(user_id: uuid.UUID) -> AccountObject:
    async with state.db_lock:
        account = state.db_users_by_id.get(user_id)

    if account is None:
        raise NotFoundError(USER_NOT_FOUND)
    return account


async def list_users(limit: int | None = None, skip: int = 0) -> Page:
    async with state.db_lock:
        accounts = list(state.db_users_by_id.values())

    accounts.sort(key=lambda a: a.created_at, reverse=True)
    return repository._page(accounts, limit, skip)


async def delete_user(user_id: uuid.UUID, acting_user_id: uuid.UUID) -> int:
    """
    Deletes an account and every record it owns in one hold of db_lock.
    Returns the number of records removed.
    """
    async with state.db_lock:
        account = state.db_users_by_id.get(user_id)
        if account is None:
            raise NotFoundError(USER_NOT_FOUND)

        if user_id == acting_user_id:
            raise ValidationError("Cannot delete your own account")

        removed = await repository._cascade_owner_records(user_id)

        await wal.log_to_wal({"op": "delete_user", "user_id": str(user_id)})
        _unindex_user(account)

    logger.info(f"User deleted: {user_id} ({removed} records removed)")
    return removed


async def count_users() -> int:
    async with state.db_lock:
        return len(state.db_users_by_id)


async def count_users_since(since: datetime) -> int:
    async with state.db_lock:
        return sum(1 for a in state.db_users_by_id.values() if a.created_at >= since)


async def role_distribution() -> Dict[str, int]:
    distribution: Dict[str, int] = {}
    async with state.db_lock:
        for account in state.db_users_by_id.values():
            distribution[account.role] = distribution.get(account.role, 0) + 1
    return distribution


async def recent_users(count: int) -> List[AccountObject]:
    page = await list_users(limit=count)
    return page.items


def _index_user(account: AccountObject) -> None:
    state.db_user_emails.add(account.id, account.email)
    state.db_users_by_id[account.id] = account


def _unindex_user(account: AccountObject) -> None:
    state.db_user_emails.remove(account.id, account.email)
    state.db_users_by_id.pop(account.id, None)

import uuid
import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Dict

from core import repository
from core import users
from core.constants.main_values import NEW_USER_WINDOW_DAYS, RECENT_USERS_SHOWN


async def admin_stats() -> Dict[str, Any]:
    since = datetime.now(timezone.utc) - timedelta(days=NEW_USER_WINDOW_DAYS)

    total_users, total_files, owners, recent, new_users, roles = await asyncio.gather(
        users.count_users(),
        repository.count_all(),
        repository.distinct_owners(),
        users.recent_users(RECENT_USERS_SHOWN),
        users.count_users_since(since),
        users.role_distribution()
    )

    return {
        "total_users": total_users,
        "total_files": total_files,
        "active_users": len(owners),
        "users_without_files": total_users - len(owners),
        "role_distribution": roles,
        "recent_users": recent,
        "new_users": new_users
    }


async def user_dashboard(owner_id: uuid.UUID) -> Dict[str, Any]:
    latest = await repository.find_latest_by_owner(owner_id)
    file_count = await repository.count_by_owner(owner_id)

    return {
        "has_file": latest is not None,
        "file_name": latest.file_name if latest else None,
        "upload_time": latest.upload_time if latest else None,
        "file_count": file_count
    }

import uuid

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from core import users
from core.errors import AuthenticationError, AuthorizationError, NotFoundError
from core.security import decode_token
from models.types.account import AccountObject

TOKEN_COOKIE = "token"

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_user(
        request: Request,
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme)
) -> AccountObject:
    """Resolves the caller from a bearer token, falling back to the login cookie."""
    token = credentials.credentials if credentials else request.cookies.get(TOKEN_COOKIE)
    if not token:
        raise AuthenticationError("Authentication required")

    payload = decode_token(token)
    if payload.get("type") != "access":
        raise AuthenticationError("Invalid token type")

    try:
        user_id = uuid.UUID(str(payload.get("sub")))
    except ValueError:
        raise AuthenticationError()

    try:
        return await users.get_user(user_id)
    except NotFoundError:
        raise AuthenticationError()


async def require_admin(user: AccountObject = Depends(get_current_user)) -> AccountObject:
    if not user.is_admin():
        raise AuthorizationError()
    return user

import uuid
from datetime import datetime, timezone
from typing import Literal
from pydantic import BaseModel, ConfigDict, EmailStr, Field

from core.security import hash_password

Role = Literal["user", "admin"]


class AccountObject(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID = Field(default_factory=uuid.uuid4, alias="_id")
    name: str
    email: EmailStr
    password_hash: str
    role: Role = "user"
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    def is_admin(self) -> bool:
        return self.role == "admin"


def NewUser(name: str, email: str, password: str, role: Role = "user") -> AccountObject:

    hashed_pw = hash_password(password)

    new_account = AccountObject(
        name=name.strip(),
        email=email.strip().lower(),
        password_hash=hashed_pw,
        role=role
    )

    return new_account

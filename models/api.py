from typing import Any, Dict, List
from pydantic import BaseModel, ConfigDict, EmailStr, Field
import uuid
from datetime import datetime

from models.document_types.table_record import TableRecord
from models.structure.projection import SeriesPoint
from models.structure.table import Table
from models.types.account import AccountObject


class CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_json(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


class RegisterRequest(BaseModel):
    name: str = Field(min_length=1)
    email: EmailStr
    password: str = Field(min_length=6)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UserResponse(CamelModel):
    id: uuid.UUID
    name: str
    email: str
    role: str
    created_at: datetime = Field(alias="createdAt")

    @classmethod
    def from_account(cls, account: AccountObject) -> "UserResponse":
        return cls(
            id=account.id,
            name=account.name,
            email=account.email,
            role=account.role,
            created_at=account.created_at
        )


class RecordSummary(CamelModel):
    id: uuid.UUID
    file_name: str = Field(alias="fileName")
    upload_time: datetime = Field(alias="uploadTime")

    @classmethod
    def from_record(cls, record: TableRecord) -> "RecordSummary":
        return cls(id=record.id, file_name=record.file_name, upload_time=record.upload_time)


class RecordDetail(RecordSummary):
    table: Table
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime | None = Field(default=None, alias="updatedAt")

    @classmethod
    def from_record(cls, record: TableRecord) -> "RecordDetail":
        return cls(
            id=record.id,
            file_name=record.file_name,
            upload_time=record.upload_time,
            table=record.table,
            created_at=record.created_at,
            updated_at=record.updated_at
        )


class OwnedRecordSummary(RecordSummary):
    owner_id: uuid.UUID = Field(alias="ownerId")
    owner_name: str | None = Field(default=None, alias="ownerName")
    owner_email: str | None = Field(default=None, alias="ownerEmail")


class PageResponse(CamelModel):
    items: List[Any]
    total_count: int = Field(alias="totalCount")
    has_more: bool = Field(alias="hasMore")


class ProjectionResponse(CamelModel):
    category_column: str = Field(alias="categoryColumn")
    value_column: str = Field(alias="valueColumn")
    points: List[SeriesPoint]

    def to_json(self) -> Dict[str, Any]:
        payload = super().to_json()
        payload["labels"] = [p.label for p in self.points]
        payload["values"] = [p.value for p in self.points]
        return payload


class UserDashboardResponse(CamelModel):
    has_file: bool = Field(alias="hasExcelFile")
    file_name: str | None = Field(default=None, alias="fileName")
    upload_time: datetime | None = Field(default=None, alias="uploadTime")
    file_count: int = Field(alias="fileCount")


class AdminStatsResponse(CamelModel):
    total_users: int = Field(alias="totalUsers")
    total_files: int = Field(alias="totalExcelFiles")
    active_users: int = Field(alias="activeUsers")
    users_without_files: int = Field(alias="usersWithoutFiles")
    role_distribution: Dict[str, int] = Field(alias="roleDistribution")
    recent_users: List[UserResponse] = Field(alias="recentUsers")
    new_users: int = Field(alias="newUsers")


class UserDetailResponse(CamelModel):
    user: UserResponse
    files: List[RecordSummary]
    latest_file: RecordDetail | None = Field(default=None, alias="excelFile")

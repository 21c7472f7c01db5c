from fastapi import Depends, FastAPI, File, Query, Request, Response, UploadFile
from fastapi.responses import JSONResponse
import uvicorn
import uuid
import logging

from slowapi.errors import RateLimitExceeded
from core import ingestion, projection, reporting, repository, users
from core.constants import main_values
from core.dependencies import TOKEN_COOKIE, get_current_user, require_admin
from core.errors import AuthenticationError, NotFoundError, SheetBoardError, ValidationError
from core.lifespan import lifespan
from core.security import create_access_token
from starlette.middleware.cors import CORSMiddleware
from models.api import (
    AdminStatsResponse, LoginRequest, OwnedRecordSummary, PageResponse, ProjectionResponse, RecordDetail,
    RecordSummary, RegisterRequest, UserDashboardResponse, UserDetailResponse, UserResponse
)
from models.types.account import AccountObject
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address

app = FastAPI(
    title="SheetBoard",
    description="Spreadsheet upload and chart data API",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[main_values.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

Instrumentator().instrument(app).expose(app)

limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.FileHandler(main_values.LOG_FILE),
        logging.StreamHandler()
    ]
)

logger = logging.getLogger("sheetboard")

MAX_PAGE = main_values.MAX_PAGE_SIZE
DEFAULT_PAGE = main_values.DEFAULT_PAGE_SIZE
NO_FILE_FOR_USER = "No Excel file found for this user"


@app.exception_handler(SheetBoardError)
async def sheetboard_error_handler(request: Request, exc: SheetBoardError):
    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def _ok(message: str, data=None) -> dict:
    return {"success": True, "message": message, "data": data}


@app.get("/ping")
async def root():
    return {"status": "alive"}


# --- Users ---

@app.post("/api/users/register", status_code=201)
@limiter.limit("10/minute")
async def register_endpoint(request: Request, payload: RegisterRequest):
    account = await users.register_user(payload.name, payload.email, payload.password)
    token = create_access_token(account.id, account.role)
    return _ok("User registered successfully", {
        "token": token,
        "user": UserResponse.from_account(account).to_json()
    })


@app.post("/api/users/login")
@limiter.limit("10/minute")
async def login_endpoint(request: Request, response: Response, payload: LoginRequest):
    account = await users.authenticate(payload.email, payload.password)
    token = create_access_token(account.id, account.role)
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        httponly=True,
        samesite="strict",
        max_age=main_values.ACCESS_TOKEN_EXPIRE_MINUTES * 60
    )
    logger.info(f"User logged in: {account.id}")
    return _ok("Login successful", {
        "token": token,
        "user": UserResponse.from_account(account).to_json()
    })


@app.post("/api/users/logout")
async def logout_endpoint(response: Response, user: AccountObject = Depends(get_current_user)):
    response.delete_cookie(TOKEN_COOKIE)
    return _ok("Logged out successfully")


@app.get("/api/users/me")
async def me_endpoint(user: AccountObject = Depends(get_current_user)):
    return _ok("User retrieved successfully", UserResponse.from_account(user).to_json())


# --- Spreadsheets ---

@app.post("/api/excel/upload", status_code=201)
@limiter.limit("10/minute")
async def upload_endpoint(
        request: Request,
        file: UploadFile | None = File(None),
        user: AccountObject = Depends(get_current_user)
):
    raw, file_name = None, None
    if file:
        named = bool(ingestion.normalize_file_name(file.filename))
        if named and file.size is not None and file.size > main_values.MAX_UPLOAD_BYTES:
            raise ValidationError("file too large", details={"max_bytes": main_values.MAX_UPLOAD_BYTES})
        # one byte past the limit is enough for ingest to reject it
        raw = await file.read(main_values.MAX_UPLOAD_BYTES + 1)
        file_name = file.filename

    summary = await ingestion.ingest(user.id, file_name, raw)
    logger.info(f"Upload stored: {summary.id} ({summary.file_name})")
    return _ok("Excel file uploaded successfully", summary.to_json())


@app.get("/api/excel/file")
async def latest_file_endpoint(user: AccountObject = Depends(get_current_user)):
    record = await repository.find_latest_by_owner(user.id)
    if record is None:
        raise NotFoundError(NO_FILE_FOR_USER)
    return _ok("Excel file retrieved successfully", RecordSummary.from_record(record).to_json())


@app.get("/api/excel/data-for-charts")
async def data_for_charts_endpoint(user: AccountObject = Depends(get_current_user)):
    record = await repository.find_latest_by_owner(user.id)
    if record is None:
        raise NotFoundError(NO_FILE_FOR_USER)
    return _ok("Excel data retrieved for chart creation", RecordDetail.from_record(record).to_json())


@app.get("/api/excel/history")
async def history_endpoint(
        limit: int | None = Query(None, ge=1, le=MAX_PAGE),
        skip: int = Query(0, ge=0),
        user: AccountObject = Depends(get_current_user)
):
    page = await repository.find_by_owner(user.id, limit=limit, skip=skip)
    return _ok("Upload history retrieved successfully", PageResponse(
        items=[RecordSummary.from_record(r).to_json() for r in page.items],
        total_count=page.total_count,
        has_more=page.has_more
    ).to_json())


@app.get("/api/excel/file/{file_id}")
async def file_by_id_endpoint(file_id: uuid.UUID, user: AccountObject = Depends(get_current_user)):
    record = await repository.find_by_id(file_id, user.id)
    return _ok("Excel file retrieved successfully", RecordDetail.from_record(record).to_json())


@app.delete("/api/excel/file/{file_id}")
async def delete_file_endpoint(file_id: uuid.UUID, user: AccountObject = Depends(get_current_user)):
    await repository.delete_by_id(file_id, user.id)
    return _ok("Excel file deleted successfully")


@app.get("/api/excel/file/{file_id}/projection")
async def projection_endpoint(
        file_id: uuid.UUID,
        category: str | None = None,
        value: str | None = None,
        user: AccountObject = Depends(get_current_user)
):
    category_column, value_column, points = await projection.project_record(file_id, user.id, category, value)
    return _ok("Chart series generated successfully", ProjectionResponse(
        category_column=category_column,
        value_column=value_column,
        points=points
    ).to_json())


@app.get("/api/excel/file/{file_id}/rows")
async def rows_endpoint(
        file_id: uuid.UUID,
        limit: int = Query(10, ge=1, le=MAX_PAGE),
        skip: int = Query(0, ge=0),
        user: AccountObject = Depends(get_current_user)
):
    record = await repository.find_by_id(file_id, user.id)
    page = projection.paginate_rows(record.table, limit=limit, skip=skip)
    return _ok("Rows retrieved successfully", page.model_dump(by_alias=True, mode="json"))


@app.get("/api/excel/dashboard-stats")
async def dashboard_stats_endpoint(user: AccountObject = Depends(get_current_user)):
    stats = await reporting.user_dashboard(user.id)
    return _ok("Dashboard stats retrieved successfully", UserDashboardResponse(**stats).to_json())


# --- Admin ---

@app.get("/api/admin/users")
async def admin_list_users_endpoint(
        limit: int = Query(DEFAULT_PAGE, ge=1, le=MAX_PAGE),
        skip: int = Query(0, ge=0),
        admin: AccountObject = Depends(require_admin)
):
    page = await users.list_users(limit=limit, skip=skip)
    return _ok("Users retrieved successfully", PageResponse(
        items=[UserResponse.from_account(a).to_json() for a in page.items],
        total_count=page.total_count,
        has_more=page.has_more
    ).to_json())


@app.get("/api/admin/users/{user_id}")
async def admin_user_detail_endpoint(user_id: uuid.UUID, admin: AccountObject = Depends(require_admin)):
    account = await users.get_user(user_id)
    page = await repository.find_by_owner(user_id)
    latest = page.items[0] if page.items else None

    return _ok("User details retrieved successfully", UserDetailResponse(
        user=UserResponse.from_account(account),
        files=[RecordSummary.from_record(r) for r in page.items],
        latest_file=RecordDetail.from_record(latest) if latest else None
    ).to_json())


@app.delete("/api/admin/users/{user_id}")
async def admin_delete_user_endpoint(user_id: uuid.UUID, admin: AccountObject = Depends(require_admin)):
    removed = await users.delete_user(user_id, acting_user_id=admin.id)
    logger.warning(f"Admin {admin.id} deleted user {user_id} ({removed} files)")
    return _ok("User deleted successfully", {"deletedFiles": removed})


@app.get("/api/admin/stats")
async def admin_stats_endpoint(admin: AccountObject = Depends(require_admin)):
    stats = await reporting.admin_stats()
    stats["recent_users"] = [UserResponse.from_account(a) for a in stats["recent_users"]]
    return _ok("Admin dashboard stats retrieved successfully", AdminStatsResponse(**stats).to_json())


@app.get("/api/admin/excel-files")
async def admin_list_files_endpoint(
        limit: int = Query(DEFAULT_PAGE, ge=1, le=MAX_PAGE),
        skip: int = Query(0, ge=0),
        admin: AccountObject = Depends(require_admin)
):
    page = await repository.find_all(limit=limit, skip=skip)

    items = []
    for record in page.items:
        owner = await _owner_or_none(record.owner_id)
        items.append(OwnedRecordSummary(
            id=record.id,
            file_name=record.file_name,
            upload_time=record.upload_time,
            owner_id=record.owner_id,
            owner_name=owner.name if owner else None,
            owner_email=owner.email if owner else None
        ).to_json())

    return _ok("All Excel files retrieved successfully", PageResponse(
        items=items,
        total_count=page.total_count,
        has_more=page.has_more
    ).to_json())


async def _owner_or_none(owner_id: uuid.UUID) -> AccountObject | None:
    try:
        return await users.get_user(owner_id)
    except LookupError:
        return None


if __name__ == "__main__":
    print("--- Starting SheetBoard (v1.0) on http://0.0.0.0:8000 ---")
    uvicorn.run(
        "main:app",
        host="0.0.0.0",
        port=8000,
        workers=1,
        reload=False,
        limit_concurrency=100,
    )

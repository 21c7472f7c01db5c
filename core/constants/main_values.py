import os

DATA_DIR = os.getenv("DATA_DIR", ".")

STORAGE_FILE = os.path.join(DATA_DIR, "sheetboard_storage.json")
WAL_FILE = os.path.join(DATA_DIR, "sheetboard_wal")
LOG_FILE = os.path.join(DATA_DIR, "sheetboard.log")

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "change-me-in-production")
JWT_ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(24 * 60)))
BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

MAX_UPLOAD_BYTES = int(os.getenv("MAX_UPLOAD_BYTES", str(50 * 1024 * 1024)))

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100
NEW_USER_WINDOW_DAYS = 30
RECENT_USERS_SHOWN = 5

# accounts registered with one of these addresses get the admin role
ADMIN_EMAILS = {email.strip().lower() for email in os.getenv("ADMIN_EMAILS", "").split(",") if email.strip()}

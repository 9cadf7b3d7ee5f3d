# coursestore/core/config.py
import os
from pathlib import Path
from typing import List, Optional
from dotenv import load_dotenv

# ================== ENV ==================

ROOT_DIR = Path(__file__).resolve().parents[2]
load_dotenv(ROOT_DIR / ".env", override=False)

def env(*names: str, default: Optional[str] = None) -> str:
    for n in names:
        v = os.environ.get(n)
        if v is not None and str(v).strip() != "":
            return v
    if default is not None:
        return default
    raise KeyError(f"Missing required env var. Tried: {', '.join(names)}")

def _flag(name: str, default: str) -> bool:
    return env(name, default=default).lower() in {"1", "true", "yes"}

# ================== DATABASE ==================
# SQLite for local development, MySQL/Postgres via DATABASE_URL

def get_database_url() -> str:
    """Get database URL - supports SQLite or MySQL."""
    url = os.environ.get("DATABASE_URL", "")
    if url:
        return url

    # Legacy MySQL vars
    mysql_host = os.environ.get("MYSQL_HOST")
    if mysql_host:
        mysql_port = int(os.environ.get("MYSQL_PORT", "3306"))
        mysql_user = os.environ.get("MYSQL_USER", "root")
        mysql_password = os.environ.get("MYSQL_PASSWORD", "")
        mysql_db = os.environ.get("MYSQL_DB", "coursestore")
        return f"mysql+aiomysql://{mysql_user}:{mysql_password}@{mysql_host}:{mysql_port}/{mysql_db}?charset=utf8mb4"

    db_path = ROOT_DIR / "coursestore.db"
    return f"sqlite+aiosqlite:///{db_path}"

AUTO_CREATE_TABLES = _flag("AUTO_CREATE_TABLES", "true")

# ================== HTTP ==================

def get_cors_origins() -> List[str]:
    raw = env("CORS_ORIGINS", default="http://localhost:3000")
    return [o.strip() for o in raw.split(",") if o.strip()]

# ================== CHECKOUT ==================

RECEIPT_PREFIX = env("RECEIPT_PREFIX", default="LC")
RECEIPT_MAX_ATTEMPTS = int(env("RECEIPT_MAX_ATTEMPTS", default="3"))
DEFAULT_CURRENCY = "USD"
DEFAULT_PAYMENT_STATUS = "completed"

# ================== LOGGING ==================

LOG_DIR = env("LOG_DIR", default="logs")
LOG_LEVEL = env("LOG_LEVEL", default="INFO").upper()

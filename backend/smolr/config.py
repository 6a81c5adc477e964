"""Application configuration. Loads from environment and .env file."""
import logging
import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent.parent
# Load .env from cwd, then backend/.env, then project root .env
load_dotenv()
load_dotenv(BASE_DIR / ".env")
load_dotenv(BASE_DIR.parent / ".env")

# External tools: bundled directory first, then PATH
TOOLS_DIR = Path(os.getenv("TOOLS_DIR", str(BASE_DIR / "tools")))
TEMP_DIR = Path(os.getenv("TEMP_DIR", tempfile.gettempdir()))
TOOL_TIMEOUT_SECONDS = int(os.getenv("TOOL_TIMEOUT_SECONDS", "300"))

# Supported formats
IMAGE_EXTENSIONS = {
    ".png", ".jpg", ".jpeg", ".tiff", ".tif", ".bmp", ".gif",
    ".heic", ".webp", ".avif", ".jxl",
}
ALL_FORMATS = ["original", "webp", "avif", "jxl", "png", "jpeg", "gif"]
DEFAULT_ENABLED_FORMATS = [
    f.strip().lower()
    for f in os.getenv("ENABLED_FORMATS", "original,webp,avif,jxl").split(",")
    if f.strip()
]

# Conversion defaults (env overrides)
DEFAULT_FORMAT = os.getenv("DEFAULT_FORMAT", "original").lower()
DEFAULT_QUALITY = int(os.getenv("DEFAULT_QUALITY", "85"))
DEFAULT_PROFILE = os.getenv("DEFAULT_PROFILE", "balanced").lower()
FILE_SUFFIX = os.getenv("FILE_SUFFIX", "_smolr")
MIN_QUALITY = 50
MAX_QUALITY = 100

# Disk space warning below this many free bytes
LOW_DISK_THRESHOLD_BYTES = int(os.getenv("LOW_DISK_THRESHOLD_BYTES", "1000000000"))
DISK_CHECK_PATH = Path(os.getenv("DISK_CHECK_PATH", str(Path.home())))

# Database: SQLite by default, any SQLAlchemy URL via DATABASE_URL
DATABASE_URL = os.getenv("DATABASE_URL", "").strip()
if not DATABASE_URL:
    db_path = BASE_DIR / "data" / "smolr.db"
    db_path.parent.mkdir(parents=True, exist_ok=True)
    DATABASE_URL = f"sqlite:///{db_path}"

# Server (for uvicorn)
HOST = os.getenv("HOST", "127.0.0.1")
PORT = int(os.getenv("PORT", "8000"))
# CORS: comma-separated origins, e.g. "http://localhost:5173,http://127.0.0.1:5173"
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173").split(",") if o.strip()]

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger("smolr")

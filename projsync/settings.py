# projsync/settings.py
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

PACKAGE_DIR = Path(__file__).resolve().parent

# Shipped as package data (see pyproject.toml)
PROFILES_DIR = PACKAGE_DIR / "profiles"

# Projects service the sync writes to
API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:3001")
HTTP_TIMEOUT = float(os.getenv("SYNC_HTTP_TIMEOUT", "30"))

# Batching: changes per batch and the pause between batches
BATCH_SIZE = int(os.getenv("SYNC_BATCH_SIZE", "20"))
BATCH_DELAY_MS = int(os.getenv("SYNC_BATCH_DELAY_MS", "100"))

PROFILES_PATH = Path(os.getenv("SYNC_PROFILES_PATH", str(PROFILES_DIR / "directors.json")))
COLUMN_MAP_PATH = Path(os.getenv("SYNC_COLUMN_MAP_PATH", str(PROFILES_DIR / "excel_columns.json")))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Field most runs care about
DEFAULT_FIELD = "project_director"

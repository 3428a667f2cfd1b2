import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = BASE_DIR / DATA_DIR

# environment overrides win over the bundled defaults
DB_PATH = Path(os.environ.get("KOUROSH_DB_PATH", DATA_PATH / DB_FILE_NAME))
DB_TIMEOUT = float(os.environ.get("KOUROSH_DB_TIMEOUT", "5.0"))

LOG_LEVEL = os.environ.get("KOUROSH_LOG_LEVEL", "INFO").upper()
LOG_FILE = os.environ.get("KOUROSH_LOG_FILE") or None

import os
from pathlib import Path

from .constants import DATA_DIR, DB_FILE_NAME

BASE_DIR = Path(__file__).resolve().parent
DATA_PATH = Path(os.getenv("WHOLESALE_LEDGER_DATA_DIR", BASE_DIR / DATA_DIR))
DB_PATH = DATA_PATH / DB_FILE_NAME

# SMS gateway credentials; notifications are skipped when either is empty
SMS_API_KEY = os.getenv("WHOLESALE_LEDGER_SMS_API_KEY", "")
SMS_SENDER_ID = os.getenv("WHOLESALE_LEDGER_SMS_SENDER_ID", "")
SMS_ENABLED = os.getenv("WHOLESALE_LEDGER_SMS_ENABLED", "true").lower() in ("1", "true", "yes")
BUSINESS_NAME = os.getenv("WHOLESALE_LEDGER_BUSINESS_NAME", "")

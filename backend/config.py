# backend/config.py
"""
Process configuration, read from environment variables (.env supported).

AWS services are opt-in; without them the app keeps daily logs in a local
JSONL file and sends no notifications.
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Must run before any os.getenv below
load_dotenv()


def env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


# -------- Paths --------
BACKEND_DIR = Path(__file__).resolve().parent
DATA_DIR = Path(os.getenv("DATA_DIR", BACKEND_DIR / "data"))
LOGS_FILE = DATA_DIR / "daily_logs.jsonl"
TARIFF_CATALOG_PATH = Path(os.getenv("TARIFF_CATALOG_PATH", BACKEND_DIR / "data" / "tariffs.json"))

# -------- AWS --------
USE_DYNAMODB = env_flag("USE_DYNAMODB")
USE_SNS = env_flag("USE_SNS")
AWS_REGION = os.getenv("AWS_REGION", "ap-south-1")
DYNAMODB_TABLE_NAME = os.getenv("DYNAMODB_TABLE_NAME", "ElecaDailyUsage")
SNS_TOPIC_NAME = os.getenv("SNS_TOPIC_NAME", "ElecaAlerts")

# -------- General --------
DEBUG = env_flag("DEBUG")
DEFAULT_SEASON = os.getenv("DEFAULT_SEASON", "summer")

import os
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash")
GEMINI_API_BASE = os.getenv("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")
ANALYZER_TIMEOUT = float(os.getenv("ANALYZER_TIMEOUT", "30"))

# UI gate for the admin panel, not a security boundary
MASTER_PASSWORD = os.getenv("MASTER_PASSWORD", "SALMOS83:18")

SESSION_SECRET = os.getenv("SESSION_SECRET", "change-me-in-production")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
SEED_DEMO_DATA = _env_bool("SEED_DEMO_DATA", True)

# Seconds a session may leave its collection workflow untouched before it is released
WORKFLOW_TTL = float(os.getenv("WORKFLOW_TTL", "1800"))

APP_NAME = "FotoFlow"

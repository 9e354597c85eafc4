# settings.py
import os

# ----------------------------
# Supabase
# ----------------------------
SUPABASE_URL = (os.environ.get("SUPABASE_URL") or "").strip()
SUPABASE_ANON_KEY = (os.environ.get("SUPABASE_ANON_KEY") or "").strip()
JOBS_TABLE = os.environ.get("JOBS_TABLE", "jobs")

# Applies to remote inserts/queries and the AI call
REQUEST_TIMEOUT_SECONDS = float(os.environ.get("REQUEST_TIMEOUT_SECONDS", "10"))

# ----------------------------
# Local fallback storage
# ----------------------------
LOCAL_STORAGE_DIR = os.environ.get("LOCAL_STORAGE_DIR", ".local_storage")

# ----------------------------
# AI suggestion
# ----------------------------
OPENAI_API_KEY = (os.environ.get("OPENAI_API_KEY") or "").strip()
OPENAI_MODEL = os.environ.get("OPENAI_MODEL", "gpt-3.5-turbo")
OPENAI_BASE_URL = os.environ.get("OPENAI_BASE_URL", "https://api.openai.com/v1").rstrip("/")

# ----------------------------
# API + setup
# ----------------------------
# Optional API key protection for api_app endpoints
API_KEY = os.environ.get("API_KEY", "")
DATABASE_URL = os.environ.get("DATABASE_URL", "")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
LOG_TO_FILE = os.environ.get("LOG_TO_FILE", "0") == "1"

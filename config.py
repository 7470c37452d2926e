import os
from dotenv import load_dotenv

load_dotenv()

# ==================== COMPLETION ENDPOINT ====================
COMPLETION_API_KEY = os.getenv("COMPLETION_API_KEY") or os.getenv("DEEPSEEK_API_KEY")
COMPLETION_URL = os.getenv("COMPLETION_URL", "https://api.deepseek.com/v1/chat/completions")
COMPLETION_MODEL = os.getenv("COMPLETION_MODEL", "deepseek-chat")
COMPLETION_TEMPERATURE = float(os.getenv("COMPLETION_TEMPERATURE", "0.1"))
COMPLETION_MAX_TOKENS = int(os.getenv("COMPLETION_MAX_TOKENS", "3000"))
COMPLETION_TIMEOUT = float(os.getenv("COMPLETION_TIMEOUT", "60"))

# ==================== DATABASE ====================
_base_dir = os.path.abspath(os.path.dirname(__file__))
_instance_dir = os.path.join(_base_dir, "instance")
_default_db = f"sqlite:///{os.path.join(_instance_dir, 'checkin.db')}"
DATABASE_URL = os.getenv("DATABASE_URL", _default_db)

# ==================== APP ====================
SECRET_KEY = os.getenv("SECRET_KEY", "your-secret-key-change-in-production")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Zone used for departure instants when the airport is not in AIRPORT_TZ_MAP
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC")

# Push tier for reminders; empty means in-app alerts only
NOTIFY_WEBHOOK_URL = os.getenv("NOTIFY_WEBHOOK_URL", "")
NOTIFY_TIMEOUT = float(os.getenv("NOTIFY_TIMEOUT", "10"))

# ==================== INVOICE BRANDING ====================
AGENCY_NAME = os.getenv("AGENCY_NAME", "Tuli Travel")
AGENCY_TAGLINE = os.getenv("AGENCY_TAGLINE", "Executive Adventures and Travel")
AGENCY_EMAIL = os.getenv("AGENCY_EMAIL", "accounting@tulitravel.com")

import os
from dotenv import load_dotenv

# Load .env from the project root
load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./dinebot.db")
ENV = os.getenv("ENV", "dev")
ENV_NORMALIZED = ENV.lower()
IS_DEV = ENV_NORMALIZED in {"dev", "development", "local"}
IS_TEST = ENV_NORMALIZED == "test"
IS_PROD = ENV_NORMALIZED in {"prod", "production"}

# Database round-trips are bounded; Postgres only
DB_STATEMENT_TIMEOUT_MS = int(os.getenv("DB_STATEMENT_TIMEOUT_MS", "5000"))

# WhatsApp Cloud API
WHATSAPP_VERIFY_TOKEN = os.getenv("WHATSAPP_VERIFY_TOKEN", "dine-delight-verify-token").strip()
WHATSAPP_APP_SECRET = os.getenv("WHATSAPP_APP_SECRET", "").strip()
META_API_VERSION = os.getenv("META_API_VERSION", "v19.0")
WHATSAPP_HTTP_TIMEOUT_SECONDS = float(os.getenv("WHATSAPP_HTTP_TIMEOUT_SECONDS", "10"))

# Conversation behaviour
CONVERSATION_IDLE_RESET_HOURS = int(os.getenv("CONVERSATION_IDLE_RESET_HOURS", "24"))
ORDER_HISTORY_LIMIT = int(os.getenv("ORDER_HISTORY_LIMIT", "5"))

SIMULATOR_ENABLED = _env_flag("SIMULATOR_ENABLED", "1" if IS_DEV else "0")
INTERNAL_METRICS_TOKEN = os.getenv("INTERNAL_METRICS_TOKEN", "").strip()

# CORS
_cors_env = os.getenv("CORS_ORIGINS", "")
CORS_ORIGINS = [origin.strip() for origin in _cors_env.split(",") if origin.strip() and origin.strip() != "*"]

if not CORS_ORIGINS and IS_DEV:
    CORS_ORIGINS = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]

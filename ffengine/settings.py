import os

CONFIG_PATH = os.getenv("FFENGINE_CONFIG_PATH", "")

# reload backoff: the gap after the n-th consecutive failure is n * step, capped
MAX_RELOAD_ERRORS = int(os.getenv("FFENGINE_MAX_RELOAD_ERRORS", "10"))
MAX_BACKOFF_SECONDS = float(os.getenv("FFENGINE_MAX_BACKOFF_SECONDS", "300"))
BACKOFF_STEP_SECONDS = 1.0

LOG_JSON = os.getenv("FFENGINE_LOG_JSON", "false").lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("FFENGINE_LOG_LEVEL", "INFO")

import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))
RELOAD = os.getenv("RELOAD", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

WS_PATH = os.getenv("WS_PATH", "/signal")

# Per-recipient send deadline; 0 disables it
SEND_TIMEOUT_SECONDS = float(os.getenv("SEND_TIMEOUT_SECONDS", 10))

# Drop a room entry once its last member disconnects. Off keeps empty rooms around.
PRUNE_EMPTY_ROOMS = os.getenv("PRUNE_EMPTY_ROOMS", "false").lower() in ("1", "true", "yes")

CORS_ORIGINS = [origin.strip() for origin in os.getenv("CORS_ORIGINS", "*").split(",") if origin.strip()]

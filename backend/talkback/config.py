# talkback/config.py

import os

# =========================
# DATABASE
# =========================

DB_USER = os.getenv("DB_USER", "talkback")
DB_PASS = os.getenv("DB_PASS", "talkback")
DB_HOST = os.getenv("DB_HOST", "localhost")
DB_PORT = os.getenv("DB_PORT", "5432")
DB_NAME = os.getenv("DB_NAME", "talkback")

# DATABASE_URL wins when set (tests point it at sqlite)
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)

# =========================
# HTTP / REALTIME
# =========================

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

CORS_ORIGINS = [
    origin.strip()
    for origin in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",")
    if origin.strip()
]

SEND_RATE_LIMIT = os.getenv("SEND_RATE_LIMIT", "60/minute")

# Pending pushes kept per connection before new ones are dropped
OUTBOX_MAXSIZE = int(os.getenv("OUTBOX_MAXSIZE", "256"))

import os

PAIRING_TIMEZONE = os.getenv("PAIRING_TIMEZONE", "America/Los_Angeles")
PAIRING_DEADLINE_HOUR = int(os.getenv("PAIRING_DEADLINE_HOUR", "22"))

ELIGIBILITY_RECENCY_DAYS = int(os.getenv("ELIGIBILITY_RECENCY_DAYS", "3"))
FLAKE_STREAK_CEILING = int(os.getenv("FLAKE_STREAK_CEILING", "5"))
HISTORY_LOOKBACK_DAYS = int(os.getenv("HISTORY_LOOKBACK_DAYS", "7"))
MATCH_SEED_SALT = os.getenv("MATCH_SEED_SALT", "daily-pairing")

REMINDER_COOLDOWN_MINUTES = int(os.getenv("REMINDER_COOLDOWN_MINUTES", "15"))
ARTIFICIAL_COMPLETION_REASON = os.getenv(
    "ARTIFICIAL_COMPLETION_REASON",
    "Partner did not respond - using responding partner's photo",
)

ADMIN_TOKEN = os.getenv("ADMIN_TOKEN", "")
JWT_SECRET = os.getenv("JWT_SECRET", "")
ACCESS_TOKEN_TTL_MINUTES = int(os.getenv("ACCESS_TOKEN_TTL_MINUTES", "15"))
DEV_MODE = os.getenv("DEV_MODE", "false").lower() == "true"

RL_SUBMIT_PHOTO_LIMIT = int(os.getenv("RL_SUBMIT_PHOTO_LIMIT", "30"))
RL_REMINDER_LIMIT = int(os.getenv("RL_REMINDER_LIMIT", "20"))
RL_WINDOW_SECONDS = int(os.getenv("RL_WINDOW_SECONDS", "60"))

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]

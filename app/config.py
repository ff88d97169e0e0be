import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./scheduler.db")

# Firebase Configuration (identity provider for bearer tokens)
FIREBASE_PROJECT_ID = os.getenv("FIREBASE_PROJECT_ID")

# Frontend base URL used in e-mail links
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:5173")

# Resend Email Configuration
RESEND_API_KEY = os.getenv("RESEND_API_KEY")
EMAIL_FROM_ADDRESS = os.getenv("EMAIL_FROM_ADDRESS", "Scheduler <noreply@scheduler.local>")

# Cache Configuration
# Set CACHE_ENABLED=false to bypass Redis entirely (local development, tests)
CACHE_ENABLED = os.getenv("CACHE_ENABLED", "true").lower() == "true"
SLOT_CACHE_TTL_SECONDS = int(os.getenv("SLOT_CACHE_TTL_SECONDS", "300"))

# Video conferencing
JITSI_BASE_URL = os.getenv("JITSI_BASE_URL", "https://meet.jit.si/")

# Slot search
BUSINESS_START_HOUR = int(os.getenv("BUSINESS_START_HOUR", "9"))
BUSINESS_END_HOUR = int(os.getenv("BUSINESS_END_HOUR", "17"))
SLOT_STRIDE_MINUTES = 30
MAX_SUGGESTIONS = 5
MAX_MEETING_DURATION_MINUTES = 480
PER_ATTENDEE_SUGGESTIONS = 3
PER_ATTENDEE_LOOKAHEAD_DAYS = 3

# Reminders for invitations still pending shortly before the meeting
REMINDER_MINUTES_BEFORE = int(os.getenv("REMINDER_MINUTES_BEFORE", "10"))

# Redis (slot cache and arq worker queue)
REDIS_URL = os.getenv("REDIS_URL")
REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
REDIS_PASSWORD = os.getenv("REDIS_PASSWORD")
REDIS_SSL = os.getenv("REDIS_SSL", "false").lower() == "true"

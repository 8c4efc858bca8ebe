import os
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()

# -----------------------------
# Server
# -----------------------------
DEBUG = os.getenv("DEBUG", "false").lower() == "true"
PORT = int(os.getenv("PORT", "8000"))

# -----------------------------
# Record store
# -----------------------------
# "prisma" needs DATABASE_URL; "memory" keeps records in-process
RECORD_STORE = os.getenv("RECORD_STORE", "prisma").lower()
DATABASE_URL = os.getenv("DATABASE_URL")

# -----------------------------
# Logging
# -----------------------------
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FILE = os.getenv("LOG_FILE")

# -----------------------------
# Intent engine
# -----------------------------
BRIDGE_TIMEOUT_SECONDS = float(os.getenv("BRIDGE_TIMEOUT_SECONDS", "30"))
MAX_STRING_LENGTH = int(os.getenv("MAX_STRING_LENGTH", "10000"))
DEFAULT_TIMEZONE = os.getenv("DEFAULT_TIMEZONE", "UTC")

# "sanitize" cleans string values; "strict" rejects suspicious strings first
INPUT_POLICY = os.getenv("INPUT_POLICY", "sanitize").lower()

"""
Runtime configuration read from environment variables.

A `.env` file in the working directory is loaded first (python-dotenv), so
local development can keep settings out of the shell. Every module reads its
settings from here instead of calling os.getenv directly.
"""

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Database: PostgreSQL in production, SQLite file for local development
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./schooltalk.db")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# ──────────────────────────────────────────────────────────────
# Secrets
#
# SECRET_MODE decides what a valid secret looks like:
#   access_code - a short numeric code shared between co-workers
#   password    - a free-form password of at least MIN_PASSWORD_LENGTH
# SECRET_HASHER picks the one-way transform used for verifiers.
# ──────────────────────────────────────────────────────────────
SECRET_MODE = os.getenv("SECRET_MODE", "access_code").lower()
SECRET_HASHER = os.getenv("SECRET_HASHER", "sha256").lower()
ACCESS_CODE_LENGTH = int(os.getenv("ACCESS_CODE_LENGTH", "4"))
MIN_PASSWORD_LENGTH = 6
PBKDF2_ITERATIONS = int(os.getenv("PBKDF2_ITERATIONS", "260000"))

# Field limits for roster input
MIN_PHONE_DIGITS = 10
MAX_CODE_LENGTH = 32
MAX_NAME_LENGTH = 120

# Client-side session marker used by the CLI
SESSION_FILE = Path(
    os.getenv("SESSION_FILE", str(Path.home() / ".schooltalk" / "session.json"))
).expanduser()

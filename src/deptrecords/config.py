"""Configuration module for the Department Student Records API.

This module provides centralized configuration management, including directory
paths, API server settings, authentication settings, and domain constants.
All configuration values can be overridden via environment variables.
"""

import os
from pathlib import Path
from typing import Dict, List, Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# --- Directory Configuration ---

# Root directory of the project
ROOT_DIR = Path(__file__).parent.parent.parent.resolve()

# Data directory (SQLite database and log files live here by default)
DATA_DIR_NAME = os.getenv("DATA_DIR_NAME", "data")
DATA_DIR = Path(os.getenv("DATA_DIR", str(ROOT_DIR / DATA_DIR_NAME)))

# --- Database Configuration ---

# Any SQLAlchemy URL. Hosting providers hand out 'postgres://', which
# SQLAlchemy no longer accepts.
DATABASE_URL: str = os.getenv(
    "DATABASE_URL", f"sqlite:///{DATA_DIR}/student_records.db"
)
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

# Echo SQL statements (debugging only)
DATABASE_ECHO: bool = os.getenv("DATABASE_ECHO", "false").lower() == "true"

# --- API Server Configuration ---

API_HOST: str = os.getenv("API_HOST", "0.0.0.0")
API_PORT: int = int(os.getenv("API_PORT", os.getenv("PORT", "5000")))
API_PREFIX: str = "/api"

# CORS allowed origins (comma-separated list)
_CORS_ALLOWED_ORIGINS_STR: str = os.getenv(
    "CORS_ALLOWED_ORIGINS",
    os.getenv("ALLOWED_ORIGINS", "http://localhost:3000,https://ulpdsrd.web.app"),
)
CORS_ALLOWED_ORIGINS: List[str] = [
    origin.strip()
    for origin in _CORS_ALLOWED_ORIGINS_STR.split(",")
    if origin.strip()
]

# --- Environment / Logging Configuration ---

# 'development' exposes stack traces in error responses
ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development").lower()
IS_DEVELOPMENT: bool = ENVIRONMENT == "development"

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
# Optional log file; empty disables file logging
LOG_FILE: Optional[str] = os.getenv("LOG_FILE") or None

# --- Authentication Configuration ---

JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "ul-physics-dept-secret")
JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
# One day, same lifetime as the department's session cookie
ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
    os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(60 * 24))
)

# Bcrypt rounds for password hashing (higher = more secure but slower)
BCRYPT_ROUNDS: int = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Length of generated temporary passwords
TEMPORARY_PASSWORD_LENGTH: int = 10

# Let unauthenticated callers read student records
ALLOW_ANONYMOUS_READS: bool = (
    os.getenv("ALLOW_ANONYMOUS_READS", "false").lower() == "true"
)

# --- Pagination Configuration ---

DEFAULT_PAGE_SIZE: int = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))
MAX_PAGE_SIZE: int = int(os.getenv("MAX_PAGE_SIZE", "100"))

# --- Activity Log Configuration ---

# Default age threshold (days) for the log cleanup sweep
LOG_RETENTION_DAYS: int = int(os.getenv("LOG_RETENTION_DAYS", "30"))

# Trailing window used by the daily activity statistics
LOG_STATS_DAYS: int = 7

# --- Domain Constants ---

ROLE_INSTRUCTOR = "instructor"
ROLE_CHAIRMAN = "chairman"
ROLE_ADMIN = "admin"

USER_ROLES: List[str] = [ROLE_INSTRUCTOR, ROLE_CHAIRMAN, ROLE_ADMIN]

SEMESTERS: List[str] = ["First", "Second", "Third"]

# Numeric aliases accepted for semesters on input
SEMESTER_ALIASES: Dict[str, str] = {"1": "First", "2": "Second", "3": "Third"}

MIN_YEAR_COMPLETED: int = 1950

USERNAME_MIN_LENGTH: int = 3
USERNAME_MAX_LENGTH: int = 50
PASSWORD_MIN_LENGTH: int = 6

# Defaults applied to omitted optional record fields
DEFAULT_NUMERIC_GRADE: float = 70
DEFAULT_INSTRUCTOR: str = "Unknown"
DEFAULT_SEMESTER: str = "First"

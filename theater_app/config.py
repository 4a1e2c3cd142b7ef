import os
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Archive (reporting) database configuration
# ARCHIVE_DATABASE_URL wins when set; otherwise the URL is assembled from the parts below
ARCHIVE_DATABASE_URL = os.getenv("ARCHIVE_DATABASE_URL")
ARCHIVE_DB_DRIVER = os.getenv("ARCHIVE_DB_DRIVER", "mysql+aiomysql")  # or postgresql+psycopg
ARCHIVE_DB_HOST = os.getenv("ARCHIVE_DB_HOST", "localhost")
ARCHIVE_DB_USER = os.getenv("ARCHIVE_DB_USER", "root")
ARCHIVE_DB_PASSWORD = os.getenv("ARCHIVE_DB_PASSWORD", "")
ARCHIVE_DB_NAME = os.getenv("ARCHIVE_DB_NAME", "theater_archive")
ARCHIVE_DB_PORT = int(os.getenv("ARCHIVE_DB_PORT", "3306"))

# Pool settings - shared hosting caps concurrent connections, keep the pool small
ARCHIVE_DB_POOL_SIZE = int(os.getenv("ARCHIVE_DB_POOL_SIZE", "10"))
ARCHIVE_DB_POOL_TIMEOUT = int(os.getenv("ARCHIVE_DB_POOL_TIMEOUT", "30"))
ARCHIVE_DB_POOL_RECYCLE = int(os.getenv("ARCHIVE_DB_POOL_RECYCLE", "300"))
ARCHIVE_DB_LOG_SLOW_QUERIES = os.getenv("ARCHIVE_DB_LOG_SLOW_QUERIES", "true").lower() == "true"
ARCHIVE_DB_SLOW_QUERY_THRESHOLD = float(os.getenv("ARCHIVE_DB_SLOW_QUERY_THRESHOLD", "1.0"))

# Placeholder email domain for archived bookings that arrive without an email
# (email is NOT NULL in the archive tables)
ARCHIVE_FALLBACK_EMAIL_DOMAIN = os.getenv("ARCHIVE_FALLBACK_EMAIL_DOMAIN", "archive.local")

# Frontend base URL for CORS
FRONTEND_URL = os.getenv("FRONTEND_URL", "http://localhost:3000")

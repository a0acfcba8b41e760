"""Application configuration and constants."""
import os
import sys
from pathlib import Path


def _resource_path(relative: str) -> Path:
    """Get path to resource, works for PyInstaller bundles."""
    if getattr(sys, "frozen", False):
        base_dir = Path(sys._MEIPASS)
    else:
        base_dir = Path(__file__).resolve().parent.parent
    return base_dir / relative


def _parse_int_env(name: str, default: int) -> int:
    """Parse integer from environment variable."""
    raw = os.environ.get(name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError:
        return default


# Database
DB_DIR = Path(os.environ.get("DB_DIR", Path.cwd() / "data"))
DB_DIR.mkdir(parents=True, exist_ok=True)
DATABASE_URL = os.environ.get(
    "DATABASE_URL", f"sqlite:///{DB_DIR / 'drivetest.db'}"
)

# Authentication
SECRET_KEY = os.environ.get(
    "SECRET_KEY",
    "CHANGE_ME_IN_PRODUCTION_USE_openssl_rand_hex_32"
)
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = _parse_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 30)
SESSION_EXTEND_MINUTES = _parse_int_env("SESSION_EXTEND_MINUTES", 60 * 24 * 30)
PASSWORD_MIN_LENGTH = 4

# Profile images
PROFILE_IMAGES_DIR = Path(
    os.environ.get("PROFILE_IMAGES_DIR", Path.cwd() / "data" / "profile-images")
)
PROFILE_IMAGES_DIR.mkdir(parents=True, exist_ok=True)
PROFILE_IMAGE_MAX_SIZE_BYTES = 2 * 1024 * 1024  # 2 MB
PROFILE_IMAGE_MAX_DIMENSION = 512  # pixels
PROFILE_IMAGE_ALLOWED_EXTENSIONS = {".png", ".jpg", ".jpeg", ".gif", ".webp"}

# Question images (cropping tool)
QUESTION_IMAGES_DIR = Path(
    os.environ.get("QUESTION_IMAGES_DIR", _resource_path("public/images/ticket_images"))
)
SHORT_IMAGE_CROP_PIXELS = 402
TALL_IMAGE_CROP_PIXELS = 90

# Test sessions
DEFAULT_QUESTION_COUNT = 30
DEFAULT_TIME_PER_QUESTION = 60
DEFAULT_FAILURE_THRESHOLD = 10
QUESTION_COUNT_RANGE = (5, 1000)
TIME_PER_QUESTION_RANGE = (30, 180)
FAILURE_THRESHOLD_RANGE = (1, 50)

# Question browser
DEFAULT_PER_PAGE = 20
MAX_PER_PAGE = 100

# Maintenance
ABANDONED_RETENTION_DAYS = _parse_int_env("ABANDONED_RETENTION_DAYS", 90)
CLEANUP_INTERVAL_SECONDS = _parse_int_env("CLEANUP_INTERVAL_SECONDS", 24 * 60 * 60)

from pathlib import Path
import os

BASE_DIR = Path(__file__).resolve().parent
INSTANCE_DIR = BASE_DIR / "instance"
DB_FILE = INSTANCE_DIR / "petlov.db"


def _get_database_uri() -> str:
    url = os.environ.get("DATABASE_URL")
    if url:
        # Heroku-style URLs still use the legacy scheme
        if url.startswith("postgres://"):
            url = "postgresql://" + url[len("postgres://") :]
        return url
    INSTANCE_DIR.mkdir(exist_ok=True)
    return f"sqlite:///{DB_FILE.as_posix()}"


def _env_flag(name: str, default: bool) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-change-me")
    SQLALCHEMY_DATABASE_URI = _get_database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    MAX_CONTENT_LENGTH = 10 * 1024 * 1024  # base64 images travel in the body

    JWT_SECRET_KEY = os.environ.get("JWT_SECRET_KEY", SECRET_KEY)
    JWT_ALGORITHM = "HS256"
    JWT_EXPIRES_HOURS = int(os.environ.get("JWT_EXPIRES_HOURS", "24"))

    CORS_ORIGINS = [
        o.strip()
        for o in os.environ.get(
            "CORS_ORIGINS", "http://localhost:5173,http://localhost:3000"
        ).split(",")
        if o.strip()
    ]
    ALLOW_REGISTRATION = _env_flag("ALLOW_REGISTRATION", True)
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    WTF_CSRF_ENABLED = False
    PAGE_SIZE_DEFAULT = 10
    PAGE_SIZE_MAX = 50

import os
from pathlib import Path

from dotenv import load_dotenv


BASE_DIR = Path(__file__).resolve().parent
ENV_PATH = BASE_DIR / ".env"
if ENV_PATH.exists():
    load_dotenv(ENV_PATH)


def _normalise_prefix(raw_prefix: str) -> str:
    raw_prefix = raw_prefix.strip()
    if not raw_prefix or raw_prefix == "/":
        return ""
    if not raw_prefix.startswith("/"):
        raw_prefix = f"/{raw_prefix}"
    return raw_prefix.rstrip("/")


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")
    JWT_ALGORITHM = os.environ.get("JWT_ALGORITHM", "HS256")

    URL_PREFIX = _normalise_prefix(os.environ.get("FLASK_URL_PREFIX", "/api"))
    API_TITLE = os.environ.get("API_TITLE", "Ecole API")
    API_VERSION = os.environ.get("API_VERSION", "0.1.0")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    _db_user = os.environ.get("DATABASE_USER", "ecole")
    _db_password = os.environ.get("DATABASE_PASSWORD", "ecole")
    _db_host = os.environ.get("DATABASE_HOST", "localhost")
    _db_port = os.environ.get("DATABASE_PORT", "3306")
    _db_name = os.environ.get("DATABASE_NAME", "ecole")

    _default_uri = (
        f"mysql+pymysql://{_db_user}:{_db_password}@{_db_host}:{_db_port}/{_db_name}"
    )

    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", _default_uri)
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Concurrent class edits race on overlapping fields: last commit wins.
    SQLALCHEMY_ENGINE_OPTIONS = {
        "isolation_level": os.environ.get("DATABASE_ISOLATION_LEVEL", "READ COMMITTED"),
    }

    # Upper bound, in seconds, for a cascading class update.
    CASCADE_TIMEOUT_SECONDS = float(os.environ.get("CASCADE_TIMEOUT_SECONDS", "30"))


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    SQLALCHEMY_ENGINE_OPTIONS: dict = {}

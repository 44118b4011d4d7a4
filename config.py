import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        database_url: str,
        timezone: str,
        session_secret: str,
        csrf_secret: str,
        session_max_age_secs: int,
        log_level: str,
        create_schema: bool = False,
    ) -> None:
        self.database_url = database_url
        self.timezone = timezone
        self.session_secret = session_secret
        self.csrf_secret = csrf_secret
        self.session_max_age_secs = session_max_age_secs
        self.log_level = log_level
        self.create_schema = create_schema


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("DUORICO_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "duorico.db"
    database_url = os.getenv("DUORICO_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("DUORICO_TIMEZONE", "America/Sao_Paulo")
    session_secret = os.getenv(
        "DUORICO_SESSION_SECRET",
        "5c0b8f6d2e1a49f3b7d4c9e08a6f1b2d3e4c5a6978b0c1d2e3f4a5b6c7d8e9f0",
    )
    csrf_secret = os.getenv(
        "DUORICO_CSRF_SECRET",
        "a91f03c7e2b84d56f0e1d2c3b4a5968778695a4b3c2d1e0f9a8b7c6d5e4f3a2b",
    )
    session_max_age_secs = int(
        os.getenv("DUORICO_SESSION_MAX_AGE_SECS", str(7 * 24 * 3600))
    )
    log_level = os.getenv("DUORICO_LOG_LEVEL", "INFO").upper()
    create_schema = os.getenv("DUORICO_CREATE_SCHEMA", "0").lower() in ("1", "true", "yes")
    return Settings(
        database_url=database_url,
        timezone=timezone,
        session_secret=session_secret,
        csrf_secret=csrf_secret,
        session_max_age_secs=session_max_age_secs,
        log_level=log_level,
        create_schema=create_schema,
    )

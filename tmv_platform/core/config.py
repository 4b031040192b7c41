"""
Configuration module - loads all env vars using pydantic-settings.
This is the SINGLE SOURCE OF TRUTH for all config values.
"""

from functools import lru_cache
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy.engine import make_url


class Settings(BaseSettings):
    # MySQL (ignored when database_url is set)
    database_url: Optional[str] = None
    mysql_host: str = "localhost"
    mysql_port: int = 3306
    mysql_user: str = "tmvbusinesssolutions"
    mysql_password: str = "password"
    mysql_db: str = "tmvbusinesssolutions"

    # Connection pool
    db_pool_size: int = 5
    db_max_overflow: int = 10
    db_echo: bool = False

    # JWT Auth
    jwt_secret_key: str = "change-this-secret"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60
    jwt_remember_me_days: int = 30
    password_reset_expire_minutes: int = 60

    # Document uploads
    upload_dir: str = "uploads"
    max_upload_mb: int = 5

    # Yoco payments
    yoco_api_url: str = "https://payments.yoco.com/api"
    yoco_secret_key: str = ""
    yoco_webhook_secret: str = ""
    payment_currency: str = "ZAR"
    payment_timeout_seconds: float = 15.0
    vat_rate: float = 0.15
    client_url: str = "http://localhost:8000"

    # App
    debug: bool = False
    log_level: str = "INFO"
    cors_origins: List[str] = ["*"]

    @property
    def sqlalchemy_url(self) -> str:
        """Construct the SQLAlchemy connection URL"""
        if self.database_url:
            return self.database_url
        return (
            f"mysql+pymysql://{self.mysql_user}:{self.mysql_password}"
            f"@{self.mysql_host}:{self.mysql_port}/{self.mysql_db}"
        )

    @property
    def masked_url(self) -> str:
        """Connection URL safe to print."""
        return make_url(self.sqlalchemy_url).render_as_string(hide_password=True)

    # Pydantic v2 config
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8"
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()

"""
Application configuration settings
"""

from pydantic_settings import BaseSettings
from pydantic import model_validator
from functools import lru_cache
from typing import List, Optional
from urllib.parse import quote_plus


class Settings(BaseSettings):
    # Database Configuration (either a full URL or individual parameters)
    database_url: Optional[str] = None
    db_host: Optional[str] = None
    db_port: Optional[int] = None
    db_name: Optional[str] = None
    db_user: Optional[str] = None
    db_password: Optional[str] = None
    db_driver: str = "postgresql"  # Only this has a default since it's unlikely to change

    # Security (Required from environment)
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24 * 30

    # Application
    app_name: str = "Topar API"
    app_version: str = "1.0.0"
    debug: bool = False

    # CORS - comma-separated origins
    allowed_origins: str = "*"

    # Storage retry policy for transient database faults
    storage_retry_attempts: int = 3
    storage_retry_delay: float = 0.05
    storage_retry_backoff: float = 2.0

    # Logging Configuration
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_to_file: bool = False
    log_file_path: str = "logs/topar.log"
    log_max_size_mb: int = 10
    log_backup_count: int = 5
    log_to_console: bool = True
    log_verbosity: str = "minimal"  # "minimal" or "full" - full also echoes SQL

    @model_validator(mode="after")
    def check_database(self):
        """Either database_url or every individual db_* part must be provided"""
        if self.database_url:
            return self
        missing = [
            name for name in ("db_host", "db_port", "db_name", "db_user", "db_password")
            if getattr(self, name) in (None, "")
        ]
        if missing:
            raise ValueError(
                f"Database is not configured: set DATABASE_URL or {', '.join(m.upper() for m in missing)}"
            )
        return self

    @property
    def sqlalchemy_url(self) -> str:
        """Compile database URL from individual parameters unless given directly"""
        if self.database_url:
            return self.database_url

        encoded_user = quote_plus(self.db_user)
        encoded_password = quote_plus(self.db_password)

        # For Cloud SQL Unix sockets the socket path is passed via connect_args in database.py
        if self.db_host.startswith('/cloudsql/'):
            return f"{self.db_driver}://{encoded_user}:{encoded_password}@/{self.db_name}"
        return f"{self.db_driver}://{encoded_user}:{encoded_password}@{self.db_host}:{self.db_port}/{self.db_name}"

    def get_allowed_origins(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(',') if origin.strip()]

    class Config:
        env_file = ".env"
        extra = "ignore"


@lru_cache()
def get_settings():
    return Settings()

from typing import Literal
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # App Config
    PROJECT_NAME: str = "AnaLog"
    PROJECT_VERSION: str = "0.1.0"
    ENVIRONMENT: Literal["development", "production", "testing"] = "development"
    DEBUG: bool = False
    API_V1_STR: str = "/v1"

    # Database (SQLite file on the device / host)
    DATABASE_PATH: str = "analog.db"

    @property
    def DATABASE_URL(self) -> str:
        # Async driver 'sqlite+aiosqlite'
        return f"sqlite+aiosqlite:///{self.DATABASE_PATH}"

    # Filter engine
    # Boundary of the virtual 'age' field, compared against years + months / 12
    AGE_THRESHOLD_YEARS: float = 5.0

    # Backup
    EXPORT_FILE_PREFIX: str = "analog-export"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

settings = Settings()

# warpstore/config.py
from functools import lru_cache
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file
load_dotenv()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Storage backend
    STORAGE_BACKEND: Literal["sqlite", "mysql"] = "sqlite"
    TABLE_NAME: str = "warp"

    # Embedded database
    SQLITE_PATH: str = "warps.db"
    CONTROL_DB_LAYOUT: bool = True

    # Networked database
    MYSQL_DSN: str = "mysql+pymysql://localhost:3306/minecraft"
    MYSQL_USER: Optional[str] = None
    MYSQL_PASSWORD: Optional[str] = None
    CREATE_IF_NOT_EXIST: bool = False
    UPDATE_IF_NECESSARY: bool = False

    # Warps
    DEFAULT_LOCALE: str = "en"
    MAX_PRIVATE_WARPS: int = 10

    # API configuration
    API_PREFIX: str = "/api/v1"

    LOG_LEVEL: str = "INFO"


@lru_cache()
def get_settings():
    return Settings()

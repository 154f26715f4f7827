"""
Environment configuration for the transport administration backend.
Uses Pydantic's settings management to handle environment variables
with proper type validation and default values.
"""

import json
from typing import List, Optional, Set, Union
from pathlib import Path
from functools import lru_cache
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from dotenv import load_dotenv

# Load environment variables from .env file if it exists
env_path = Path('.') / '.env'
load_dotenv(dotenv_path=env_path)


class Settings(BaseSettings):
    """Application settings with environment variable support"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Application configuration
    APP_NAME: str = "Transport Admin"
    API_VERSION: str = "v1"
    API_V1_STR: str = "/api"
    DEBUG: bool = False
    ENVIRONMENT: str = "development"
    CORS_ORIGINS: Union[List[str], str] = Field(default=["*"])

    # Database configuration
    DATABASE_URL: Optional[str] = None
    DB_POOL_SIZE: int = 20
    DB_POOL_OVERFLOW: int = 10
    DB_ECHO: bool = False
    SLOW_QUERY_THRESHOLD_SECONDS: float = 0.5

    # Security configuration
    JWT_SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60
    ELEVATED_ADMIN_ROLES: Union[Set[str], str] = Field(default={"super_admin"})

    # Grievance workflow
    DEFAULT_SLA_HOURS: int = 72
    DEFAULT_GRIEVANCE_PAGE_SIZE: int = 10
    DEFAULT_AUDIT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 100

    # Vendor GPS (MERCYDA)
    MERCYDA_BASE_URL: str = "https://console.mercydatrack.com"
    MERCYDA_USERNAME: Optional[str] = None
    MERCYDA_PASSWORD: Optional[str] = None
    MERCYDA_AUTH_ENDPOINT: str = "/api/auth/login"
    MERCYDA_VEHICLE_ENDPOINT: str = "/api/vehicles"
    MERCYDA_AUTH_METHOD: Optional[str] = None
    GPS_HTTP_TIMEOUT_SECONDS: float = 30.0

    # SMS GPS
    TWILIO_ACCOUNT_SID: Optional[str] = None
    TWILIO_AUTH_TOKEN: Optional[str] = None
    TWILIO_PHONE_NUMBER: Optional[str] = None
    LOCAL_SMS_GATEWAY_URL: Optional[str] = None
    TEXTBELT_API_KEY: str = "textbelt"
    SMS_REPLY_WAIT_SECONDS: float = 45.0
    SMS_HTTP_TIMEOUT_SECONDS: float = 30.0

    # Monitoring and logging
    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    ENABLE_STRUCTURED_LOGGING: bool = True
    LOG_SQL_QUERIES: bool = False
    LOG_FILE: Optional[str] = None

    # Validators
    @field_validator('CORS_ORIGINS', mode='before')
    @classmethod
    def parse_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        """Parse CORS_ORIGINS from string to list"""
        if isinstance(v, str):
            # Handle JSON string format from .env
            if v.startswith('[') and v.endswith(']'):
                try:
                    return json.loads(v)
                except json.JSONDecodeError:
                    pass
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator('ELEVATED_ADMIN_ROLES', mode='before')
    @classmethod
    def parse_elevated_roles(cls, v: Union[str, Set[str], List[str]]) -> Set[str]:
        """Parse ELEVATED_ADMIN_ROLES from a comma separated string"""
        if isinstance(v, str):
            return {role.strip() for role in v.split(",") if role.strip()}
        return set(v)

    @field_validator('LOG_LEVEL')
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    def get_database_url(self) -> Optional[str]:
        """Return the configured database URL, or None when the database is not configured"""
        return self.DATABASE_URL

    def is_database_configured(self) -> bool:
        return bool(self.DATABASE_URL)

    def is_production(self) -> bool:
        """Check if running in production environment"""
        return self.ENVIRONMENT == "production"

    def is_development(self) -> bool:
        """Check if running in development environment"""
        return self.ENVIRONMENT == "development"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()

"""
Application Configuration
Centralized configuration management with proper typing and validation.
"""

from pydantic_settings import BaseSettings
from typing import List
import os
from dotenv import load_dotenv

load_dotenv()


class Settings(BaseSettings):
    """Application settings with proper validation and defaults."""

    # Application settings
    app_name: str = os.getenv("APP_NAME", "TestRail Result Sync")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    debug: bool = os.getenv("DEBUG", "False").lower() == "true"

    # CORS origins, comma separated; empty allows no cross-origin callers
    cors_origins: str = os.getenv("CORS_ORIGINS", "")

    # TestRail connection
    testrail_host: str = os.getenv("TESTRAIL_HOST", "")
    testrail_user: str = os.getenv("TESTRAIL_USER", "")
    testrail_password: str = os.getenv("TESTRAIL_PASSWORD", "")
    request_timeout: float = float(os.getenv("TESTRAIL_TIMEOUT", "30"))
    rate_limit_retry_seconds: float = float(os.getenv("TESTRAIL_RATE_LIMIT_RETRY_SECONDS", "60"))

    # Sync target
    testrail_project_id: int = int(os.getenv("TESTRAIL_PROJECT_ID", "0"))
    testrail_suite_id: int = int(os.getenv("TESTRAIL_SUITE_ID", "0"))
    testrail_milestone: str = os.getenv("TESTRAIL_MILESTONE", "")
    enable_milestone: bool = os.getenv("TESTRAIL_ENABLE_MILESTONE", "False").lower() == "true"
    extra_parameters: str = os.getenv("TESTRAIL_EXTRA_PARAMETERS", "")

    # Sync policy
    create_missing_cases: bool = os.getenv("TESTRAIL_CREATE_MISSING_CASES", "False").lower() == "true"
    use_existing_run: bool = os.getenv("TESTRAIL_USE_EXISTING_RUN", "False").lower() == "true"
    test_run: str = os.getenv("TESTRAIL_TEST_RUN", "0") or "0"

    def cors_origin_list(self) -> List[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        case_sensitive = False


# Global settings instance
settings = Settings()

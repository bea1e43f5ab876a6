"""
Configuration management for the Banner scraper.
"""

from pathlib import Path

from dotenv import load_dotenv
from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()


class Settings(BaseSettings):
    """Scraper settings."""

    # Application
    app_name: str = "bannerscraper"
    debug: bool = False
    version: str = "1.0.0"
    log_level: str = "INFO"

    # Paths
    project_root: Path = Path(__file__).parent.parent.parent.parent
    data_dir: Path = project_root / "data"

    # Institution
    host: str = "neu.edu"
    college_title: str = "Northeastern University"
    banner_base_url: str = "https://nubanner.neu.edu/StudentRegistrationSsb/ssb"
    classic_base_url: str = "https://wl11gp.neu.edu/udcprod8"

    # Scraping
    num_terms: int = 10
    courses_per_request: int = 500  # upstream hard limit per page
    subjects_per_request: int = 200
    total_count_page_size: int = 10
    max_concurrent_sections: int = 300
    meeting_max_retries: int = 5
    meeting_retry_max_delay_ms: int = 500
    request_timeout: float = 30.0
    request_attempts: int = 3
    user_agent: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"

    model_config = SettingsConfigDict(
        env_prefix="BANNER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator("banner_base_url", "classic_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def upper_log_level(cls, v: str) -> str:
        return v.upper()


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get scraper settings."""
    return settings

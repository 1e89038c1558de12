"""
Configuration management for the signal pricing engine
"""
from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "Signal Pricing Engine"
    environment: str = "development"
    debug: bool = True
    log_level: str = "INFO"
    log_dir: str = "logs"

    # API
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    # Database
    database_url: str = "sqlite:///./signal_pricing.db"

    # Pricing
    # Applied when neither the variant nor the product carries its own base markup
    default_base_markup_percent: float = 10.0

    # Recalculation job
    recalc_interval_minutes: int = 60
    recalc_chunk_size: int = 50  # Products per chunk (50-100)
    recalc_max_workers: int = 8  # Parallel products within a chunk
    signal_read_timeout_seconds: float = 5.0

    # Feature Flags
    enable_scheduler: bool = True

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()

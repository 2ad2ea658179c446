"""
Configuration management using Pydantic Settings.
Reads from environment variables.
"""

from pydantic import ConfigDict, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings."""

    model_config = ConfigDict(env_file=".env", case_sensitive=False)

    # Application Configuration
    environment: str = Field(default="development", alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Persistence: empty path keeps everything in memory
    store_path: str = Field(default="", alias="STORE_PATH")

    # Seed the directory with the demo accounts from data/demo_users.py
    seed_demo_users: bool = Field(default=False, alias="SEED_DEMO_USERS")


# Global settings instance
settings = Settings()

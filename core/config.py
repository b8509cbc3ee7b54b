from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration from environment"""
    model_config = SettingsConfigDict(env_file=".env")

    database_url: str = "sqlite:///./clipfeed.db"
    sql_echo: bool = False
    log_level: str = "INFO"
    interaction_retention_days: int = 90


settings = Settings()

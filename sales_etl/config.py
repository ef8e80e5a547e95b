"""
Configuration settings for the sales ETL pipeline.

Uses Pydantic Settings to load environment variables for database connections,
logging, and pipeline defaults (source, target, validation thresholds).
"""
from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database
    db_host: str = Field("localhost", alias="DB_HOST")
    db_port: int = Field(5432, alias="DB_PORT")
    db_user: str = Field("postgres", alias="DB_USER")
    db_password: str = Field("postgres", alias="DB_PASSWORD")
    db_name: str = Field("sales_etl", alias="DB_NAME")
    db_statement_timeout_ms: int = Field(0, alias="DB_STATEMENT_TIMEOUT_MS")

    # Application
    app_env: str = Field("development", alias="APP_ENV")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    log_json: bool = Field(False, alias="LOG_JSON")

    # Pipeline defaults
    etl_source_path: str = Field("data/sales.csv", alias="ETL_SOURCE_PATH")
    etl_source_format: Optional[str] = Field(None, alias="ETL_SOURCE_FORMAT")
    etl_target: str = Field("postgres", alias="ETL_TARGET")
    etl_target_path: str = Field("output/sales_clean.csv", alias="ETL_TARGET_PATH")
    etl_table: str = Field("sales_transactions", alias="ETL_TABLE")
    etl_batch_size: int = Field(1_000, alias="ETL_BATCH_SIZE")
    etl_max_reject_ratio: float = Field(0.1, alias="ETL_MAX_REJECT_RATIO")
    etl_failure_policy: str = Field("strict", alias="ETL_FAILURE_POLICY")
    etl_results_dir: str = Field("results", alias="ETL_RESULTS_DIR")
    etl_pool_min_size: int = Field(1, alias="ETL_POOL_MIN_SIZE")
    etl_pool_max_size: int = Field(4, alias="ETL_POOL_MAX_SIZE")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Retrieve a cached instance of Settings to avoid repeated env parsing.
    """
    return Settings()


__all__ = ["Settings", "get_settings"]

"""Runtime settings for WindowForge.

everything can be overridden with WINDOWFORGE_* environment variables, e.g.
WINDOWFORGE_SLIDE_INTERVAL_SECONDS=10. lists are passed as json.
"""

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from windowforge.models.report import MERGEABLE_AGGREGATIONS, AggregationType


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="WINDOWFORGE_")

    # Buckets
    slide_interval_seconds: int = 60  # bucket width
    window_interval_seconds: int = 3600  # default reporting horizon

    # Aggregations the tenant may use in continuous reports
    enabled_aggregations: list[AggregationType] = list(MERGEABLE_AGGREGATIONS)

    # Engine
    sql_dialect: str = "duckdb"
    timestamp_to_epoch_function: str = "epoch"  # to_unixtime on presto/trino
    event_time_column: str = "_time"
    max_result_rows: int = 5000
    database_path: str | None = None  # None = in-memory duckdb

    # Logging
    log_level: str = "INFO"

    @model_validator(mode="after")
    def check_intervals(self) -> "Settings":
        if self.slide_interval_seconds <= 0:
            raise ValueError("slide_interval_seconds must be positive")
        if self.window_interval_seconds < self.slide_interval_seconds:
            raise ValueError("window_interval_seconds must be at least one slide")
        return self


settings = Settings()

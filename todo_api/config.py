from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", populate_by_name=True)

    service_name: str = Field(default="todo-api", alias="SERVICE_NAME")
    service_version: str = Field(default="0.1.0", alias="SERVICE_VERSION")
    environment: str = Field(default="development", alias="ENVIRONMENT")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: Literal["json", "console", "cloudwatch"] | None = Field(default=None, alias="LOG_FORMAT")
    group_id_header: str = Field(default="x-group-id", alias="GROUP_ID_HEADER")

    otlp_endpoint: str | None = Field(default=None, alias="OTEL_EXPORTER_OTLP_ENDPOINT")
    trace_console_export: bool = Field(default=False, alias="TRACE_CONSOLE_EXPORT")
    trace_sample_ratio: float = Field(default=1.0, ge=0.0, le=1.0, alias="TRACE_SAMPLE_RATIO")
    enable_metrics: bool = Field(default=True, alias="ENABLE_METRICS")
    metrics_export_interval_ms: int = Field(default=60000, alias="METRICS_EXPORT_INTERVAL_MS")

    # Set by the Lambda runtime.
    aws_lambda_function_name: str | None = Field(default=None, alias="AWS_LAMBDA_FUNCTION_NAME")

    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")

    @property
    def resolved_log_format(self) -> str:
        if self.log_format:
            return self.log_format
        if self.aws_lambda_function_name:
            return "cloudwatch"
        return "console" if self.environment == "development" else "json"


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()

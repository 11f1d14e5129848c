from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_URL = "https://retdec.com/service/api"


class Settings(BaseSettings):
    api_key: str | None = None
    api_url: str = DEFAULT_API_URL
    user_agent: str = "retdec-client/0.1"
    request_timeout_seconds: float = 30.0
    poll_interval_seconds: float = Field(default=0.5, gt=0)
    max_poll_attempts: int | None = Field(default=None, ge=1)
    otel_enabled: bool = False
    otel_service_name: str = "retdec-client"
    otel_exporter_otlp_endpoint: str | None = None
    otel_exporter_otlp_headers: str | None = None
    otel_trace_sample_ratio: float = 1.0
    otel_log_correlation: bool = True

    model_config = SettingsConfigDict(env_prefix="RETDEC_", extra="ignore", frozen=True)


@lru_cache
def get_settings() -> Settings:
    return Settings()

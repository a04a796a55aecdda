"""Configuration management for tree-tools."""

from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    log_level: str = "INFO"
    otel_enabled: bool = False
    otel_service_name: str = "tree-tools"
    # OTLP gRPC endpoint, e.g. http://localhost:4317; console export when unset
    otel_exporter_endpoint: Optional[str] = None

    # Traversal tuning
    stream_buffer_size: int = 20
    max_workers: Optional[int] = None
    push_poll_interval: float = 0.1

    model_config = {
        "env_prefix": "TREE_TOOLS_",
        "case_sensitive": False,
    }


settings = Settings()

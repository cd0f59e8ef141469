"""Application configuration loaded from environment variables."""

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # NebulaGraph
    nebula_graphd_host: str = "127.0.0.1"
    nebula_graphd_port: int = 9669
    nebula_user: str = "root"
    nebula_password: str = "nebula"
    nebula_space: str = "inventory"
    nebula_pool_size: int = 10

    # Redis (company event channels)
    redis_host: str = "127.0.0.1"
    redis_port: int = 9379
    redis_db: int = 0
    redis_password: Optional[str] = None
    publish_events: bool = True

    # Backend
    backend_host: str = "0.0.0.0"
    backend_port: int = 9200
    log_level: str = "INFO"

    # Ingestion
    default_profile: str = "default"

    # Paths (relative to project root)
    profiles_dir: str = "profiles"
    raw_data_dir: str = "data/raw"

    @property
    def project_root(self) -> Path:
        return Path(__file__).parent.parent.parent

    model_config = {"env_file": ".env", "env_prefix": "", "extra": "ignore"}


settings = Settings()

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    database_url: str = ""
    direct_database_url: str = ""

    fernet_key: str = ""  # Encrypts users.github_token at rest

    environment: str = "development"
    cors_origins: str = "http://localhost:3000"

    redis_url: str = ""
    redis_timeout_seconds: float = 5.0

    packages_per_page: int = 15
    favorites_per_page: int = 15

    github_api_url: str = "https://api.github.com"
    github_user_agent: str = "package-registry"

    # Cloud Tasks config for GitHub sync jobs
    gcp_project: str = ""
    gcp_region: str = "us-central1"
    cloud_tasks_queue: str = "github-sync"
    github_sync_worker_url: str = ""

    # Index cleanup job
    index_cleanup_batch_size: int = 500

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()

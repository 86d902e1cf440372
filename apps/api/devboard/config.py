from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
  model_config = SettingsConfigDict(env_file=".env", extra="ignore")

  database_url: str = "postgresql+asyncpg://devboard:devboard@db:5432/devboard"
  fernet_key: str = "AAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAA="
  app_version: str = "v2026-10-19"
  build_sha: str = "dev"
  api_docs_enabled: bool = True
  log_level: str = "INFO"

  cors_origins: str = "http://localhost:4200,http://127.0.0.1:4200"
  trusted_hosts: str = "localhost,127.0.0.1,0.0.0.0,api,test"

  github_api_base_url: str = "https://api.github.com"
  github_user_agent: str = "DevBoard/1.0"
  github_timeout_seconds: int = 20
  # Shared secret configured on the GitHub webhook; unset means deliveries are rejected.
  github_webhook_secret: str | None = None

  webhook_delivery_retention_days: int | None = None
  webhook_delivery_prune_interval_seconds: int = 3600

  def cors_origin_list(self) -> list[str]:
    return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

  def trusted_host_list(self) -> list[str]:
    return [h.strip() for h in self.trusted_hosts.split(",") if h.strip()]


settings = Settings()

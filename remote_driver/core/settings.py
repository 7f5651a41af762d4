"""
Centralized settings (environment variables / .env) for the CLI layer.
Library classes take explicit keyword arguments; only the CLI reads these.
"""
# @file purpose: Centralized settings using Pydantic Settings.

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RD_", env_file=".env", extra="ignore")

    # remote endpoint; setting either one disables binary mode
    remote_server_addr: str | None = None
    port: int | None = None
    base_path: str = "/wd/hub"
    browser_name: str = "chrome"

    # local driver binary
    binary: str | None = None
    binary_name: str = "chromedriver"
    binary_port: int = 9515
    port_probe_attempts: int = 50
    startup_timeout_seconds: float = 10.0
    poll_interval_seconds: float = 0.25
    teardown_grace_seconds: float = 5.0
    fallback_server_addr: str = "127.0.0.1"
    fallback_port: int = 4444

    request_timeout_seconds: float = 60.0
    log_level: str = "INFO"


settings = Settings()

"""Application settings loaded from environment variables."""

from __future__ import annotations

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """All configuration is driven by environment variables."""

    # Remote target
    remote_user: str = Field(
        default="",
        validation_alias=AliasChoices("vm_user", "remote_user"),
    )
    remote_host: str = Field(
        default="",
        validation_alias=AliasChoices("vm_ip_address", "remote_host"),
    )
    ssh_key_path: str = "~/.ssh/id_rsa.pem"
    ssh_port: int = 22
    ssh_connect_timeout_seconds: int = 15
    enable_ssh_debug: bool = False

    # Command execution
    command_timeout_seconds: float = 30.0
    command_delay_seconds: float = 0.1
    kill_grace_seconds: float = 5.0
    retry_backoff_seconds: float = 1.0
    sudo_retry_backoff_seconds: float = 2.0

    # Session pool
    session_idle_timeout_seconds: float = 300.0
    session_reap_interval_seconds: float = 60.0

    # Lifecycle reconciliation
    settle_delay_seconds: float = 3.0
    stop_poll_interval_seconds: float = 3.0
    stop_poll_timeout_seconds: float = 30.0
    kill_rounds: int = 3
    kill_term_grace_seconds: float = 5.0
    kill_round_delay_seconds: float = 3.0
    kill_verify_interval_seconds: float = 2.0

    # Managed node
    celestia_network: str = "mocha-4"
    celestia_binary_path: str = "/usr/local/bin/celestia"
    celestia_user: str = ""
    celestia_service: str = "celestia-light.service"
    celestia_process_pattern: str = "celestia.*light"

    # API key
    api_key: str = Field(
        default="",
        validation_alias=AliasChoices("nodectl_api_key", "api_key"),
    )

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


# Singleton – import this from anywhere
settings = Settings()

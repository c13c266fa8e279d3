"""Configuration management for the Farcaster client."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, SecretStr


class NeynarConfig(BaseModel):
    """Neynar API credentials and bot identity."""

    api_key: SecretStr = Field(..., description="Neynar API key")
    bot_fid: Optional[int] = Field(default=None, ge=1, description="FID of the bot account")
    signer_uuid: Optional[SecretStr] = Field(
        default=None, description="Neynar signer UUID used to publish casts"
    )


class WebhookConfig(BaseModel):
    """Inbound Neynar webhook settings."""

    secret: Optional[SecretStr] = Field(default=None, description="Shared webhook secret")
    host: str = "127.0.0.1"
    port: int = Field(default=8080, ge=1, le=65535)


class RequestConfig(BaseModel):
    """Outbound request admission and retry settings."""

    max_concurrent_requests: int = Field(default=2, ge=1)
    max_retries: int = Field(default=12, ge=1)
    base_delay: float = Field(default=1.0, ge=0.0, description="Backoff step in seconds")
    max_jitter_ms: int = Field(default=2000, ge=0)
    default_timeout: float = Field(default=10.0, gt=0.0, description="Seconds per attempt")


class BotConfig(BaseModel):
    """Mention polling behavior."""

    poll_interval: int = Field(default=10, ge=1, description="Seconds between queue drains")


class Config(BaseModel):
    """Root configuration model."""

    neynar: NeynarConfig
    webhook: WebhookConfig = WebhookConfig()
    requests: RequestConfig = RequestConfig()
    bot: BotConfig = BotConfig()


def load_config(config_path: str | Path = "config.yaml") -> Config:
    """Load and validate configuration from YAML file.

    Supports ${VAR_NAME} syntax for environment variable expansion.

    Args:
        config_path: Path to the configuration file.

    Returns:
        Validated Config object.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValidationError: If config is invalid.
        ValueError: If referenced environment variable is not set.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(
            f"Config file not found: {path}\n"
            "Copy config.example.yaml to config.yaml and fill in your values."
        )

    with path.open() as f:
        raw_config = yaml.safe_load(f) or {}

    # Expand environment variables in the format ${VAR_NAME}
    def expand_env_vars(obj):
        if isinstance(obj, dict):
            return {k: expand_env_vars(v) for k, v in obj.items()}
        elif isinstance(obj, list):
            return [expand_env_vars(item) for item in obj]
        elif isinstance(obj, str) and obj.startswith("${") and obj.endswith("}"):
            env_var = obj[2:-1]
            value = os.getenv(env_var)
            if value is None:
                raise ValueError(f"Environment variable '{env_var}' is not set")
            return value
        return obj

    raw_config = expand_env_vars(raw_config)

    return Config(**raw_config)

from __future__ import annotations

import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel

from .constants import (
    DEFAULT_INVOICE_DUE_DAYS,
    DEFAULT_LABOR_RATE,
    DEFAULT_TOPIC,
)


class RedisConfig(BaseModel):
    """Configuration for Redis transport."""

    host: str = "localhost"
    port: int = 6379
    db: int = 0
    password: Optional[str] = None
    visibility_timeout: float = 300.0


class TransportConfig(BaseModel):
    """Transport configuration settings."""

    backend: Literal["inmemory", "redis"] = "inmemory"
    topic: str = DEFAULT_TOPIC
    redis: RedisConfig = RedisConfig()


class AutomationConfig(BaseModel):
    """Tunables for action handlers and message retries."""

    default_labor_rate: float = DEFAULT_LABOR_RATE
    invoice_due_days: int = DEFAULT_INVOICE_DUE_DAYS
    invoice_number_prefix: str = "INV-"
    max_attempts: int = 3
    retry_backoff_base: float = 1.5


class FieldflowConfig(BaseModel):
    """Top-level configuration model."""

    transport: TransportConfig = TransportConfig()
    database_url: Optional[str] = None
    log_level: str = "INFO"
    automation: AutomationConfig = AutomationConfig()


def load_config(path: Optional[str] = None) -> FieldflowConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to FIELDFLOW_CONFIG env
            variable or 'fieldflow.yaml' in the current directory.
    """

    config_path = path or os.getenv("FIELDFLOW_CONFIG", "fieldflow.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = FieldflowConfig(**data)
    else:
        config = FieldflowConfig()

    env_db_url = os.getenv("FIELDFLOW_DATABASE_URL") or os.getenv("DATABASE_URL")
    if env_db_url:
        config.database_url = env_db_url
    return config

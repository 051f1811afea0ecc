"""Configuration management - loads service.yaml and environment variables."""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import ValidationError

from subscription_service.models import (
    LifecycleConfig,
    PubSubConfig,
    SchedulerConfig,
    ServiceConfig,
    SubscriptionPlan,
)

DEFAULT_CONFIG_PATH = "config/service.yaml"


class ConfigurationError(Exception):
    """Raised when configuration is invalid or missing."""

    pass


class Config:
    """Service configuration loader.

    Loads service.yaml and provides validated access to:
    - Subscription plans
    - Pub/Sub settings
    - Scheduler cadence
    - Lifecycle rules
    """

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to service.yaml. If not provided, uses CONFIG_PATH env var
                        or defaults to ./config/service.yaml
        """
        self._config_path = self._resolve_config_path(config_path)
        self._service_config: Optional[ServiceConfig] = None
        self._load_config()

    def _resolve_config_path(self, config_path: Optional[str]) -> Path:
        """Resolve configuration file path from argument, env var, or default."""
        if config_path:
            return Path(config_path)

        env_path = os.getenv("CONFIG_PATH")
        if env_path:
            return Path(env_path)

        return Path(DEFAULT_CONFIG_PATH)

    def _load_config(self) -> None:
        """Load and validate service.yaml."""
        if not self._config_path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {self._config_path}\n"
                f"Please create {DEFAULT_CONFIG_PATH} or set CONFIG_PATH environment variable"
            )

        try:
            with open(self._config_path, encoding="utf-8") as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML configuration: {e}") from e

        if not raw_config:
            raise ConfigurationError(f"Configuration file is empty: {self._config_path}")

        try:
            self._service_config = ServiceConfig(**raw_config)
        except ValidationError as e:
            raise ConfigurationError(f"Configuration validation failed:\n{e}") from e

        plan_ids = [plan.id for plan in self._service_config.plans]
        duplicates = sorted({plan_id for plan_id in plan_ids if plan_ids.count(plan_id) > 1})
        if duplicates:
            raise ConfigurationError(f"Duplicate plan ids in configuration: {duplicates}")

    @property
    def service(self) -> ServiceConfig:
        """Get validated service configuration."""
        if self._service_config is None:
            raise ConfigurationError("Configuration not loaded")
        return self._service_config

    @property
    def config_path(self) -> Path:
        """Get path to configuration file."""
        return self._config_path

    @property
    def plans(self) -> list[SubscriptionPlan]:
        return self.service.plans

    @property
    def pubsub(self) -> PubSubConfig:
        return self.service.pubsub

    @property
    def scheduler(self) -> SchedulerConfig:
        return self.service.scheduler

    @property
    def lifecycle(self) -> LifecycleConfig:
        return self.service.lifecycle

    def reload(self) -> None:
        """Reload configuration from disk."""
        self._load_config()

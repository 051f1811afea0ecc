"""Tests for configuration loading and management."""

from pathlib import Path

import pytest

from subscription_service.config import Config, ConfigurationError
from subscription_service.models import BillingCycle
from subscription_service.repositories.plan_repository import PlanNotFoundError, PlanRepository

CONFIG_PATH = Path(__file__).resolve().parents[2] / "config" / "service.yaml"

MINIMAL_YAML = """
pubsub:
  project_id: "test-project"
  topic: "test-topic"
plans:
  - id: "basic-monthly"
    name: "Basic"
    billing_cycle: "MONTHLY"
    price: "9.99"
"""


@pytest.fixture
def config():
    """Create a Config instance for testing."""
    return Config(str(CONFIG_PATH))


def write_config(tmp_path, content):
    path = tmp_path / "service.yaml"
    path.write_text(content, encoding="utf-8")
    return str(path)


class TestConfigurationLoading:
    """Test basic configuration loading."""

    def test_config_loads_successfully(self, config):
        assert config.config_path.exists()
        assert str(config.config_path).endswith("service.yaml")

    def test_plans_are_loaded(self, config):
        plan_ids = [plan.id for plan in config.plans]
        assert "basic-monthly" in plan_ids
        assert "pro-yearly" in plan_ids

    def test_pubsub_settings(self, config):
        assert config.pubsub.project_id == "local-project"
        assert config.pubsub.topic == "subscription-events-topic"

    def test_scheduler_and_lifecycle_settings(self, config):
        assert config.scheduler.timezone == "UTC"
        assert config.scheduler.expiry_interval_minutes == 60
        assert config.lifecycle.pending_timeout_hours == 24
        assert config.lifecycle.reminder_days_ahead == 2

    def test_config_path_from_env(self, monkeypatch):
        monkeypatch.setenv("CONFIG_PATH", str(CONFIG_PATH))

        assert Config().config_path == CONFIG_PATH

    def test_defaults_for_optional_sections(self, tmp_path):
        config = Config(write_config(tmp_path, MINIMAL_YAML))

        assert config.pubsub.enabled is True
        assert config.pubsub.publish_timeout_seconds == 5.0
        assert config.scheduler.maintenance_hour == 2
        assert config.scheduler.reminder_hour == 9
        assert config.lifecycle.reminder_message == "Your subscription will expire in 2 days"

    def test_reload(self, tmp_path):
        path = write_config(tmp_path, MINIMAL_YAML)
        config = Config(path)
        Path(path).write_text(MINIMAL_YAML.replace("test-topic", "other-topic"), encoding="utf-8")

        config.reload()

        assert config.pubsub.topic == "other-topic"


class TestConfigurationErrors:
    """Test invalid configuration handling."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="not found"):
            Config(str(tmp_path / "missing.yaml"))

    def test_empty_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="empty"):
            Config(write_config(tmp_path, ""))

    def test_invalid_yaml(self, tmp_path):
        with pytest.raises(ConfigurationError, match="parse"):
            Config(write_config(tmp_path, "pubsub: [unclosed"))

    def test_validation_error(self, tmp_path):
        with pytest.raises(ConfigurationError, match="validation"):
            Config(write_config(tmp_path, MINIMAL_YAML.replace('"MONTHLY"', '"WEEKLY"')))

    def test_unknown_timezone(self, tmp_path):
        content = MINIMAL_YAML + "scheduler:\n  timezone: \"Mars/Olympus\"\n"
        with pytest.raises(ConfigurationError, match="validation"):
            Config(write_config(tmp_path, content))

    def test_duplicate_plan_ids(self, tmp_path):
        content = MINIMAL_YAML + """
  - id: "basic-monthly"
    name: "Basic again"
    billing_cycle: "YEARLY"
    price: "99.00"
"""
        with pytest.raises(ConfigurationError, match="Duplicate"):
            Config(write_config(tmp_path, content))


class TestPlanRepository:
    """Test plan lookups over the loaded configuration."""

    def test_from_config(self, config):
        plans = PlanRepository.from_config(config)

        assert len(plans) == len(config.plans)
        assert plans.get_by_id("pro-yearly").billing_cycle == BillingCycle.YEARLY

    def test_active_plans_exclude_retired(self, config):
        plans = PlanRepository.from_config(config)

        active_ids = [plan.id for plan in plans.get_active_plans()]

        assert "legacy-monthly" in plans
        assert "legacy-monthly" not in active_ids

    def test_unknown_plan(self, config):
        plans = PlanRepository.from_config(config)

        assert plans.find_by_id("missing") is None
        with pytest.raises(PlanNotFoundError):
            plans.get_by_id("missing")

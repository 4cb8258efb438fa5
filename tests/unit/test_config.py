"""Tests for configuration loading."""

import fieldflow.persistence as persistence
from fieldflow.config import load_config
from fieldflow.persistence import SQLiteDocumentStore, get_store
from fieldflow.transports import get_transport
from fieldflow.transports.inmemory import InMemoryTransport
from fieldflow.transports.redis import RedisTransport


def test_load_config_from_env(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
transport:
  backend: redis
  topic: automation.test
  redis:
    host: testhost
    port: 1234
log_level: DEBUG
automation:
  default_labor_rate: 75
  max_attempts: 5
"""
    )
    monkeypatch.setenv("FIELDFLOW_CONFIG", str(config_path))
    monkeypatch.delenv("FIELDFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    config = load_config()
    assert config.transport.backend == "redis"
    assert config.transport.topic == "automation.test"
    assert config.transport.redis.host == "testhost"
    assert config.transport.redis.port == 1234
    assert config.log_level == "DEBUG"
    assert config.automation.default_labor_rate == 75.0
    assert config.automation.max_attempts == 5
    assert config.automation.invoice_due_days == 30
    assert config.database_url is None


def test_missing_config_file_uses_defaults(tmp_path, monkeypatch):
    monkeypatch.delenv("FIELDFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    config = load_config(str(tmp_path / "absent.yaml"))
    assert config.transport.backend == "inmemory"
    assert config.transport.topic == "fieldflow.automation"
    assert config.automation.default_labor_rate == 50.0


def test_database_url_env_overrides_file(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text("database_url: sqlite:///from-file.db\n")
    monkeypatch.setenv("FIELDFLOW_DATABASE_URL", "sqlite:///from-env.db")

    config = load_config(str(config_path))
    assert config.database_url == "sqlite:///from-env.db"


def test_get_transport_uses_config(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        """
transport:
  backend: redis
  redis:
    host: confighost
    port: 6380
    visibility_timeout: 45
"""
    )
    monkeypatch.setenv("FIELDFLOW_CONFIG", str(config_path))
    monkeypatch.delenv("FIELDFLOW_TRANSPORT", raising=False)

    transport = get_transport()
    assert isinstance(transport, RedisTransport)
    assert transport.host == "confighost"
    assert transport.port == 6380
    assert transport.visibility_timeout == 45.0


def test_transport_env_overrides_config(tmp_path, monkeypatch):
    monkeypatch.setenv("FIELDFLOW_CONFIG", str(tmp_path / "absent.yaml"))
    monkeypatch.setenv("FIELDFLOW_TRANSPORT", "inmemory")

    assert isinstance(get_transport(), InMemoryTransport)


def test_get_store_selects_sqlite(tmp_path, monkeypatch):
    monkeypatch.delenv("FIELDFLOW_DATABASE_URL", raising=False)
    monkeypatch.setattr(persistence, "_store_instance", None)
    monkeypatch.delenv("DATABASE_URL", raising=False)

    store = get_store(f"sqlite://{tmp_path / 'fieldflow.db'}")
    assert isinstance(store, SQLiteDocumentStore)
    store.close()

"""Unit tests for arangolink.config.config_base module."""

import json
from pathlib import Path

import pytest

from arangolink.config import BasicAuth, BearerAuth, ConnectionConfig
from arangolink.config.config_base import (
    ConfigError,
    ConfigValidationError,
    _overlay,
)


class TestConfigValidationError:
    """Tests for ConfigValidationError exception."""

    def test_is_config_error(self) -> None:
        """ConfigValidationError should inherit from ConfigError."""
        assert issubclass(ConfigValidationError, ConfigError)

    def test_message_lists_errors(self) -> None:
        """The message should join every error."""
        error = ConfigValidationError("Semantic validation failed", ["first", "second"])
        assert error.errors == ["first", "second"]
        assert str(error) == "Semantic validation failed: first; second"

    def test_message_without_errors(self) -> None:
        error = ConfigValidationError("Configuration file not found: x.json", [])
        assert str(error) == "Configuration file not found: x.json"


class TestOverlay:
    """Tests for _overlay helper."""

    def test_nested_dicts_combined(self) -> None:
        """Nested dicts are combined key by key."""
        result = _overlay(
            {"agent_options": {"max_sockets": 3, "keep_alive": True}, "url": "http://a:8529"},
            {"agent_options": {"max_sockets": 8}},
        )
        assert result == {"agent_options": {"max_sockets": 8, "keep_alive": True}, "url": "http://a:8529"}

    def test_non_dict_values_replace(self) -> None:
        """Lists and model instances replace the current value."""
        auth = BearerAuth(token="abc")
        result = _overlay(
            {"url": ["http://a:8529", "http://b:8529"], "auth": {"username": "root", "password": ""}},
            {"url": ["http://c:8529"], "auth": auth},
        )
        assert result == {"url": ["http://c:8529"], "auth": auth}

    def test_inputs_unchanged(self) -> None:
        base = {"agent_options": {"max_sockets": 3}}
        _overlay(base, {"agent_options": {"max_sockets": 8}})
        assert base == {"agent_options": {"max_sockets": 3}}


class TestBaseConfigValidation:
    """Tests for schema and semantic validation."""

    def test_extra_fields_forbidden(self) -> None:
        """Unknown keys should be rejected."""
        with pytest.raises(ValueError):
            ConnectionConfig(hosts=["http://a:8529"])

    def test_assignment_is_validated(self) -> None:
        """Assignments should go through field validation."""
        config = ConnectionConfig()
        with pytest.raises(ValueError):
            config.arango_version = 12

    def test_validate_full_collects_errors(self) -> None:
        """Every semantic problem should be reported at once."""
        config = ConnectionConfig(url=["localhost:8529", ""])
        with pytest.raises(ConfigValidationError) as exc_info:
            config.validate_full()
        assert len(exc_info.value.errors) == 2


class TestBaseConfigLoading:
    """Tests for from_dict, from_json and from_file."""

    def test_to_dict_is_json_compatible(self) -> None:
        """to_dict should omit unset values and render enums as strings."""
        data = ConnectionConfig(load_balancing_strategy="ROUND_ROBIN").to_dict()
        assert "auth" not in data
        assert data["load_balancing_strategy"] == "ROUND_ROBIN"
        json.dumps(data)

    def test_dict_round_trip(self) -> None:
        config = ConnectionConfig(url=["http://a:8529", "http://b:8529"], auth={"username": "admin"}, max_retries=False)
        assert ConnectionConfig.from_dict(config.to_dict()) == config

    def test_from_dict_schema_error(self) -> None:
        """Schema errors should be wrapped and name the offending field."""
        with pytest.raises(ConfigValidationError) as exc_info:
            ConnectionConfig.from_dict({"agent_options": {"max_sockets": 0}})
        assert exc_info.value.errors[0].startswith("agent_options.max_sockets:")

    def test_from_dict_semantic_error(self) -> None:
        """from_dict should run semantic validation."""
        with pytest.raises(ConfigValidationError, match="no protocol"):
            ConnectionConfig.from_dict({"url": "localhost:8529"})

    def test_from_json_malformed(self) -> None:
        with pytest.raises(ConfigValidationError, match="Invalid JSON format"):
            ConnectionConfig.from_json("{not json")

    def test_from_json_requires_object(self) -> None:
        with pytest.raises(ConfigValidationError, match="must be an object"):
            ConnectionConfig.from_json('["http://a:8529"]')

    def test_from_file(self, tmp_path: Path) -> None:
        """A JSON file should load into a config."""
        path = tmp_path / "arango.json"
        path.write_text(json.dumps({
            "url": ["tcp://a:8529", "tcp://b:8529"],
            "database_name": "graphs",
            "auth": {"username": "admin", "password": "secret"},
            "agent_options": {"max_sockets": 5},
        }))

        config = ConnectionConfig.from_file(path)

        assert config.urls == ["tcp://a:8529", "tcp://b:8529"]
        assert config.database_name == "graphs"
        assert config.auth == BasicAuth(username="admin", password="secret")
        assert config.agent_options.max_sockets == 5

    def test_from_file_missing(self, tmp_path: Path) -> None:
        """A missing file should raise ConfigValidationError."""
        with pytest.raises(ConfigValidationError, match="not found"):
            ConnectionConfig.from_file(tmp_path / "missing.json")


class TestWithOverrides:
    """Tests for with_overrides."""

    def test_overrides_applied(self) -> None:
        """Overrides win and untouched fields are kept."""
        base = ConnectionConfig(url="http://a:8529", database_name="graphs")
        config = base.with_overrides({"url": "http://b:8529"})

        assert config.url == "http://b:8529"
        assert config.database_name == "graphs"
        assert base.url == "http://a:8529"

    def test_nested_options_combined(self) -> None:
        base = ConnectionConfig(agent_options={"max_sockets": 5, "keep_alive": False})
        config = base.with_overrides({"agent_options": {"keep_alive": True}})
        assert config.agent_options.max_sockets == 5
        assert config.agent_options.keep_alive is True

    def test_auth_replaced_not_combined(self) -> None:
        """Switching from basic to bearer auth must not mix their fields."""
        base = ConnectionConfig(auth={"username": "admin", "password": "secret"})
        config = base.with_overrides({"auth": BearerAuth(token="jwt")})
        assert config.auth == BearerAuth(token="jwt")

    def test_overrides_revalidated(self) -> None:
        """An override producing an invalid config should raise."""
        with pytest.raises(ConfigValidationError):
            ConnectionConfig().with_overrides({"url": []})

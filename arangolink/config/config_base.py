"""
Base Configuration Classes
==========================

Pydantic models shared by every arangolink configuration object.

A configuration is checked twice: pydantic validates field types and
ranges when the model is built, and ``validate_semantics`` reports
cross-field problems that a schema cannot express. The loaders below run
both and report failures as ``ConfigValidationError``.
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar('T', bound='BaseConfig')


class ConfigError(Exception):
    """Configuration-related errors."""
    pass


class ConfigValidationError(ConfigError):
    """A configuration failed schema or semantic validation."""

    def __init__(self, message: str, errors: list[str]):
        self.errors = errors
        super().__init__(f"{message}: {'; '.join(errors)}" if errors else message)


def _overlay(base: dict[str, Any], overrides: dict[str, Any]) -> dict[str, Any]:
    """Return ``base`` with ``overrides`` applied; nested plain dicts are combined key by key."""
    result = dict(base)
    for key, value in overrides.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = _overlay(current, value)
        else:
            result[key] = value
    return result


class BaseConfig(BaseModel, ABC):
    """
    Abstract base for arangolink configuration models.

    Unknown keys are rejected and assignments are re-validated, so a typo
    in a config file or keyword argument fails loudly.
    """

    model_config = ConfigDict(
        extra="forbid",
        validate_assignment=True,
        use_enum_values=False,
        arbitrary_types_allowed=False,
    )

    @abstractmethod
    def validate_semantics(self) -> list[str]:
        """
        Report cross-field problems the schema cannot express.

        Returns:
            One message per problem; empty when the configuration is usable
        """

    def validate_full(self) -> None:
        """
        Raise if ``validate_semantics`` reports anything.

        Raises:
            ConfigValidationError: Listing every semantic problem
        """
        problems = self.validate_semantics()
        if problems:
            raise ConfigValidationError("Semantic validation failed", problems)

    def to_dict(self) -> dict[str, Any]:
        """JSON-compatible representation, omitting unset optional values."""
        return self.model_dump(mode="json", exclude_none=True)

    @classmethod
    def from_dict(cls: type[T], data: dict[str, Any]) -> T:
        """
        Build and fully validate a configuration.

        Raises:
            ConfigValidationError: If the schema or the semantic checks fail
        """
        try:
            instance = cls(**data)
        except ValidationError as e:
            raise ConfigValidationError(
                f"Invalid {cls.__name__}",
                [f"{'.'.join(str(part) for part in err['loc'])}: {err['msg']}" for err in e.errors()]
            ) from e
        instance.validate_full()
        return instance

    @classmethod
    def from_json(cls: type[T], text: str) -> T:
        """Build a configuration from a JSON object."""
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            raise ConfigValidationError("Invalid JSON format", [str(e)]) from e
        if not isinstance(data, dict):
            raise ConfigValidationError("Invalid JSON format", ["top-level value must be an object"])
        return cls.from_dict(data)

    @classmethod
    def from_file(cls: type[T], file_path: str | Path) -> T:
        """
        Load a configuration from a JSON file.

        Raises:
            ConfigValidationError: If the file is missing, unreadable or invalid
        """
        path = Path(file_path)
        if not path.is_file():
            raise ConfigValidationError(f"Configuration file not found: {path}", [])
        try:
            text = path.read_text(encoding='utf-8')
        except OSError as e:
            raise ConfigValidationError(f"Failed to read configuration file: {path}", [str(e)]) from e

        logger.debug("Loading %s from %s", cls.__name__, path)
        return cls.from_json(text)

    def with_overrides(self: T, overrides: dict[str, Any]) -> T:
        """
        Return a validated copy with ``overrides`` applied on top.

        Nested mappings (e.g. agent options) are combined key by key; any
        other value, including model instances, replaces the current one.
        Fields excluded from serialization (such as agent option hooks) are
        not carried over and must be passed in ``overrides``.
        """
        return self.__class__.from_dict(_overlay(self.to_dict(), overrides))

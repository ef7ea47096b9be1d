"""
Settings base class used in place of pydantic_settings.

Values are resolved in this order: keyword arguments, environment variables
(field name and any aliases), the configured .env file, then the field
default. String values are coerced to the annotated type.
"""

from __future__ import annotations

import json
import os
from abc import ABC
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar, Union, get_type_hints

T = TypeVar("T", bound="BaseSettings")

_TRUE_VALUES = ("true", "1", "yes", "on")


class AliasChoices:
    """Several environment variable names that may supply one field."""

    def __init__(self, *choices: str) -> None:
        self.choices = list(choices)

    def __iter__(self):
        return iter(self.choices)


class FieldInfo:
    """Information about a field in a settings class."""

    def __init__(
        self,
        default: Any = None,
        description: str = "",
        validation_alias: Optional[Union[str, list, AliasChoices]] = None,
        required: bool = False,
    ) -> None:
        self.default = default
        self.description = description
        self.validation_alias = validation_alias
        self.required = required

    def env_names(self, field_name: str) -> List[str]:
        """Environment variable names to check for this field, in order."""
        names: List[str] = []
        if isinstance(self.validation_alias, (AliasChoices, list)):
            names.extend(self.validation_alias)
        elif self.validation_alias:
            names.append(self.validation_alias)
        names.append(field_name.upper())
        return names


def Field(
    default: Any = None,
    *,
    description: str = "",
    validation_alias: Optional[Union[str, list, AliasChoices]] = None,
    **kwargs: Any,
) -> Any:
    """Create a field descriptor for settings. ``...`` marks a required field."""
    required = default is ...
    return FieldInfo(
        default=None if required else default,
        description=description,
        validation_alias=validation_alias,
        required=required,
    )


class SettingsConfigDict:
    """Configuration for settings loading."""

    def __init__(
        self,
        env_file: Optional[str] = None,
        env_file_encoding: str = "utf-8",
        case_sensitive: bool = True,
        extra: str = "forbid",
    ) -> None:
        self.env_file = env_file
        self.env_file_encoding = env_file_encoding
        self.case_sensitive = case_sensitive
        self.extra = extra


class BaseSettings(ABC):
    """Base class for settings that loads from environment variables."""

    model_config: SettingsConfigDict = SettingsConfigDict()

    def __init__(self, **kwargs: Any) -> None:
        env_file_vars: Dict[str, str] = {}
        if self.model_config.env_file:
            env_file_vars = self._load_env_file(self.model_config.env_file)

        for field_name, field_type in get_type_hints(self.__class__).items():
            if field_name.startswith("_") or field_name == "model_config":
                continue

            field_info = getattr(self.__class__, field_name, None)
            if not isinstance(field_info, FieldInfo):
                field_info = FieldInfo(default=field_info)

            if field_name in kwargs:
                value = kwargs[field_name]
            else:
                value = self._lookup(
                    field_info.env_names(field_name), env_file_vars
                )
                if value is None:
                    if field_info.required:
                        raise ValueError(
                            f"Required field '{field_name}' not found in environment"
                        )
                    value = field_info.default

            if value is not None:
                value = self._convert_value(value, field_type)
            setattr(self, field_name, value)

    def _lookup(
        self, env_names: List[str], env_file_vars: Dict[str, str]
    ) -> Optional[str]:
        """Find the first matching name in the environment or the .env file."""
        if not self.model_config.case_sensitive:
            env_names = env_names + [name.lower() for name in env_names]
        for env_name in env_names:
            if env_name in os.environ:
                return os.environ[env_name]
            if env_name in env_file_vars:
                return env_file_vars[env_name]
        return None

    def _load_env_file(self, env_file_path: str) -> Dict[str, str]:
        """Load KEY=VALUE pairs from a .env file, if it exists."""
        env_vars: Dict[str, str] = {}
        env_path = Path(env_file_path)
        if not env_path.exists():
            return env_vars

        with open(env_path, "r", encoding=self.model_config.env_file_encoding) as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith("#") and "=" in line:
                    key, value = line.split("=", 1)
                    env_vars[key.strip()] = value.strip().strip("\"'")
        return env_vars

    def _convert_value(self, value: Any, target_type: Type) -> Any:
        """Convert a string value to the target type."""
        if not isinstance(value, str):
            return value

        origin = getattr(target_type, "__origin__", None)

        # Optional[X] -> X
        if origin is Union:
            inner = [arg for arg in target_type.__args__ if arg is not type(None)]
            return self._convert_value(value, inner[0]) if inner else value

        if target_type is bool:
            return value.lower() in _TRUE_VALUES
        if target_type is int:
            return int(value)
        if target_type is float:
            return float(value)
        if origin is list:
            if value.startswith("[") and value.endswith("]"):
                return json.loads(value)
            return [item.strip() for item in value.split(",") if item.strip()]

        return value

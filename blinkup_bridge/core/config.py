"""
Configuration for BlinkUp Bridge.

Sections are pydantic models; values come from a YAML file with ${NAME}
expansion, BLINKUP_* environment variables and command-line overrides,
in increasing order of precedence.
"""

from __future__ import annotations

import copy
import os
import re
from pathlib import Path
from typing import Any, TypeVar

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from blinkup_bridge.sdk.mock import SCENARIOS

T = TypeVar("T")

ENV_PREFIX = "BLINKUP_"


# ============================================================================
# Sections
# ============================================================================


class SystemConfig(BaseModel):
    """Process-wide settings."""

    name: str = "blinkup-bridge"
    log_level: str = "INFO"
    debug: bool = False  # Debug build: developer plan IDs are honoured
    controller: str = ""  # "package.module:ClassName" of the SDK controller

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"Log level must be one of {valid}, got '{v}'")
        return v.upper()


class PreferencesConfig(BaseModel):
    """Where the cached plan ID lives."""

    backend: str = "yaml"  # yaml | memory
    directory: str = "~/.config/blinkup-bridge"
    name: str = "DefaultPreferences"
    plan_id_key: str = "planId"

    @field_validator("backend")
    @classmethod
    def validate_backend(cls, v: str) -> str:
        if v not in ("yaml", "memory"):
            raise ValueError(f"Backend must be 'yaml' or 'memory', got '{v}'")
        return v


class FlowConfig(BaseModel):
    """Onboarding flow behaviour."""

    # Deliver TRANSPORT_ERROR for token errors that are not a 401. When off,
    # those errors are only shown to the operator and the setup flow decides.
    report_transport_errors: bool = False
    # Raise on a second delivery instead of logging it
    strict_delivery: bool = False
    invalid_api_key_message: str = "Error. Invalid BlinkUp API key."
    error_message_prefix: str = "Error. "


class ServerConfig(BaseModel):
    """Configuration for the bridge HTTP server."""

    host: str = "127.0.0.1"
    port: int = Field(default=9540, ge=1, le=65535)
    history_limit: int = Field(default=100, ge=1, le=10000)


class MockConfig(BaseModel):
    """Configuration for the mock SDK controller."""

    enabled: bool = False
    scenario: str = "success"
    token_delay_seconds: float = Field(default=0.5, ge=0.0)
    setup_delay_seconds: float = Field(default=2.0, ge=0.0)

    @field_validator("scenario")
    @classmethod
    def validate_scenario(cls, v: str) -> str:
        if v not in SCENARIOS:
            raise ValueError(f"Scenario must be one of {SCENARIOS}, got '{v}'")
        return v


class BridgeConfig(BaseModel):
    """Complete BlinkUp Bridge configuration."""

    system: SystemConfig = Field(default_factory=SystemConfig)
    preferences: PreferencesConfig = Field(default_factory=PreferencesConfig)
    flow: FlowConfig = Field(default_factory=FlowConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    mock: MockConfig = Field(default_factory=MockConfig)


# ============================================================================
# Loading
# ============================================================================


class ConfigLoader:
    """Reads raw configuration dictionaries from YAML and the environment."""

    # ${NAME} or ${NAME:-fallback}
    ENV_PATTERN = re.compile(r"\$\{([^}:]+)(?::-([^}]*))?\}")

    def load_yaml(self, path: Path) -> dict[str, Any]:
        """Read one YAML file, expanding ${NAME} references first."""
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {path}")
        return yaml.safe_load(self._substitute_env_vars(path.read_text())) or {}

    def merge(self, base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
        """Return base with override layered on top, section by section."""
        merged = dict(base)
        for key, value in override.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                value = self.merge(current, value)
            merged[key] = value
        return merged

    def _substitute_env_vars(self, content: str) -> str:
        def lookup(match: re.Match) -> str:
            name, fallback = match.groups()
            if name in os.environ:
                return os.environ[name]
            # Unset with no fallback: leave the reference for the reader to see
            return fallback if fallback is not None else match.group(0)

        return self.ENV_PATTERN.sub(lookup, content)

    def apply_env_overrides(self, config: dict[str, Any]) -> dict[str, Any]:
        """
        Overlay BLINKUP_<SECTION>_<FIELD> environment variables.

        BLINKUP_FLOW_REPORT_TRANSPORT_ERRORS=true -> flow.report_transport_errors = True

        The first segment after the prefix names the section, the rest is
        the field name. Variables naming no known section are skipped.
        """
        for key, raw in os.environ.items():
            if not key.startswith(ENV_PREFIX):
                continue
            section, _, name = key[len(ENV_PREFIX) :].lower().partition("_")
            if name and section in BridgeConfig.model_fields:
                config.setdefault(section, {})[name] = self._parse_value(raw)
        return config

    def _parse_value(self, value: str) -> Any:
        lowered = value.lower()
        if lowered in ("true", "yes"):
            return True
        if lowered in ("false", "no"):
            return False
        for number in (int, float):
            try:
                return number(value)
            except ValueError:
                continue
        return value


# ============================================================================
# Config Container
# ============================================================================


class Config:
    """
    Raw configuration plus its validated BridgeConfig view.

    Usage:
        config = Config.load(Path("config/blinkup-bridge.yaml"))
        config.flow.report_transport_errors
        config.get("mock.scenario")
    """

    DEFAULT_FILENAME = "config.yaml"

    def __init__(self, data: dict[str, Any], source_path: Path | None = None):
        self._data = data
        self._source_path = source_path
        self._typed = BridgeConfig.model_validate(data)

    @classmethod
    def load(cls, path: Path, overrides: dict[str, Any] | None = None) -> Config:
        """
        Load a YAML file.

        Environment overrides are applied to the file contents, then the
        explicit overrides (command-line flags) on top of both.
        """
        loader = ConfigLoader()
        data = loader.apply_env_overrides(loader.load_yaml(path))
        return cls(loader.merge(data, overrides or {}), source_path=path)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Config:
        return cls(data)

    @classmethod
    def default(cls, overrides: dict[str, Any] | None = None) -> Config:
        """Built-in defaults with environment and explicit overrides."""
        loader = ConfigLoader()
        return cls(loader.merge(loader.apply_env_overrides({}), overrides or {}))

    def get(self, path: str, default: T = None) -> T:
        """
        Look up a dotted path such as "flow.strict_delivery".

        Reads the validated model, so unset fields return their defaults.
        """
        node: Any = self._typed.model_dump()
        for key in path.split("."):
            if not isinstance(node, dict) or key not in node:
                return default  # type: ignore
            node = node[key]
        return node  # type: ignore

    def set(self, path: str, value: Any) -> None:
        """
        Change one value in memory.

        Raises ValueError if the result fails validation; the configuration
        is left unchanged in that case.
        """
        *sections, field_name = path.split(".")
        data = copy.deepcopy(self._data)
        node = data
        for key in sections:
            node = node.setdefault(key, {})
        node[field_name] = value
        self._typed = BridgeConfig.model_validate(data)
        self._data = data

    def save(self, path: Path | None = None) -> None:
        """Write the raw configuration back to YAML via a temp file."""
        target = path or self._source_path
        if target is None:
            raise ValueError("No path given and configuration was not loaded from a file")
        if target.is_dir():
            target = target / self.DEFAULT_FILENAME

        staged = target.with_suffix(".yaml.tmp")
        staged.write_text(yaml.safe_dump(self._data, default_flow_style=False, sort_keys=False))
        staged.rename(target)

    def validate(self) -> list[str]:
        """Validation problems with the raw data, empty when valid."""
        try:
            BridgeConfig.model_validate(self._data)
        except ValidationError as e:
            return [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()]
        return []

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    # ========================================================================
    # Sections
    # ========================================================================

    @property
    def system(self) -> SystemConfig:
        return self._typed.system

    @property
    def preferences(self) -> PreferencesConfig:
        return self._typed.preferences

    @property
    def flow(self) -> FlowConfig:
        return self._typed.flow

    @property
    def server(self) -> ServerConfig:
        return self._typed.server

    @property
    def mock(self) -> MockConfig:
        return self._typed.mock

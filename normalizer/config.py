"""Configuration loading from CLI args, env vars, and optional YAML file."""

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass, field

import yaml

from normalizer.context_tags import parse_context_tag_sources
from normalizer.errors import ConfigurationError
from normalizer.severity import SeverityLevel, SeverityMapping

logger = logging.getLogger(__name__)

SEVERITY_KEY_PREFIX = "severity_level_"


def _parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("true", "1", "yes")


def _parse_tokens(value) -> list:
    """Accept a YAML list or the comma separated ``fatal, panic`` form."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    if isinstance(value, str):
        return [token.strip() for token in value.split(",") if token.strip()]
    return [value]


def _optional_str(value) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass(frozen=True)
class NormalizerConfig:
    instrumentation_key: str = ""
    standard_schema: bool = False
    context_tag_sources: tuple = ()
    time_property: str | None = None
    message_property: str = "message"
    severity_property: str | None = None
    severity_mapping: SeverityMapping = field(default_factory=SeverityMapping)
    default_severity: SeverityLevel = SeverityLevel.INFORMATION

    def __post_init__(self):
        # Frozen: normalize through object.__setattr__ so a bad tag key fails here.
        object.__setattr__(
            self,
            "context_tag_sources",
            parse_context_tag_sources(self.context_tag_sources),
        )

    @classmethod
    def from_dict(cls, d: dict) -> "NormalizerConfig":
        """Validate a plain settings dict and build the config once.

        Severity overrides are read from ``severity_level_<level>`` keys or a
        nested ``severity_levels`` mapping. Raises ConfigurationError for an
        unknown context tag key, severity level or malformed value.
        """
        overrides = {}
        for key, value in d.items():
            key = str(key)
            if key.startswith(SEVERITY_KEY_PREFIX):
                overrides[key[len(SEVERITY_KEY_PREFIX):]] = value
        levels = d.get("severity_levels") or {}
        if not isinstance(levels, Mapping):
            raise ConfigurationError(
                f"severity_levels must map level names to tokens, got {levels!r}"
            )
        for key, value in levels.items():
            overrides[str(key)] = value

        mapping_overrides = {}
        for name, value in overrides.items():
            try:
                level = SeverityLevel.from_name(name)
            except KeyError:
                raise ConfigurationError(f"Severity level '{name}' is invalid!") from None
            mapping_overrides[level] = _parse_tokens(value)

        default_severity = d.get("default_severity", SeverityLevel.INFORMATION)
        if not isinstance(default_severity, SeverityLevel):
            try:
                default_severity = SeverityLevel.from_name(str(default_severity))
            except KeyError:
                raise ConfigurationError(
                    f"Severity level '{default_severity}' is invalid!"
                ) from None

        message_property = _optional_str(d.get("message_property")) or "message"

        return cls(
            instrumentation_key=str(d.get("instrumentation_key") or ""),
            standard_schema=_parse_bool(d.get("standard_schema", False)),
            context_tag_sources=parse_context_tag_sources(d.get("context_tag_sources")),
            time_property=_optional_str(d.get("time_property")),
            message_property=message_property,
            severity_property=_optional_str(d.get("severity_property")),
            severity_mapping=SeverityMapping.with_overrides(mapping_overrides),
            default_severity=default_severity,
        )


ENV_KEYS = {
    "instrumentation_key": "INSTRUMENTATION_KEY",
    "standard_schema": "STANDARD_SCHEMA",
    "context_tag_sources": "CONTEXT_TAG_SOURCES",
    "time_property": "TIME_PROPERTY",
    "message_property": "MESSAGE_PROPERTY",
    "severity_property": "SEVERITY_PROPERTY",
}


def load_yaml_config(path: str | None) -> dict:
    """Load normalizer settings from a YAML file. Returns empty dict if no path."""
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        logger.warning("Config file %s not found, using defaults", path)
        return {}
    except yaml.YAMLError as exc:
        raise ConfigurationError(f"Invalid YAML in {path}: {exc}") from exc

    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping")
    logger.info("Loaded YAML config from %s", path)
    return data


def load_config(cli_args=None, yaml_data: dict | None = None) -> NormalizerConfig:
    """Build NormalizerConfig from defaults <- YAML <- env vars <- CLI args."""
    settings = dict(yaml_data or {})

    for key, env_name in ENV_KEYS.items():
        if env_name in os.environ:
            settings[key] = os.environ[env_name]

    if cli_args is not None:
        for key in ENV_KEYS:
            value = getattr(cli_args, key, None)
            if value is not None:
                settings[key] = value

    return NormalizerConfig.from_dict(settings)

"""Loading and validation of the optional YAML configuration file."""

from __future__ import annotations

import json
import logging
import os
import re
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from xcdeploy.core.errors import ConfigLoadError, ConfigValidationError

LOGGER = logging.getLogger(__name__)

CONFIG_ENV_VAR = "XCDEPLOY_CONFIG"
DEFAULT_APPLICATIONS_DIR = "/Applications"
DEFAULT_XCODE_PATH = "/Applications/Xcode.app"


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


def _construct_mapping(loader: UniqueKeyLoader, node: yaml.Node, deep: bool = False) -> dict[str, Any]:
    mapping: dict[str, Any] = {}
    for key_node, value_node in node.value:
        key = loader.construct_object(key_node, deep=deep)
        if key in mapping:
            raise ConfigValidationError(f"Duplicate key '{key}' in YAML document")
        mapping[key] = loader.construct_object(value_node, deep=deep)
    return mapping


UniqueKeyLoader.add_constructor(
    yaml.resolver.BaseResolver.DEFAULT_MAPPING_TAG,
    _construct_mapping,
)


@dataclass(frozen=True)
class Settings:
    applications_dir: str = DEFAULT_APPLICATIONS_DIR
    default_xcode_path: str = DEFAULT_XCODE_PATH
    command_timeout_s: float = 60.0
    build_timeout_s: float = 1800.0
    log_stream_timeout_s: float = 300.0
    device_cache_ttl_s: float = 300.0
    denied_command_patterns: tuple[str, ...] = ()


def _load_schema_validator() -> Any:
    schema_text = resources.files("xcdeploy.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def config_path() -> Path:
    explicit = os.environ.get(CONFIG_ENV_VAR)
    if explicit:
        return Path(explicit)
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "xcdeploy/config.yaml"


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigLoadError(f"Could not read config file {path}: {exc}") from exc

    try:
        loaded = yaml.load(content, Loader=UniqueKeyLoader)
    except yaml.YAMLError as exc:
        raise ConfigValidationError(f"Invalid YAML in {path}: {exc}") from exc

    if loaded is None:
        return {}
    if not isinstance(loaded, dict):
        raise ConfigValidationError(f"Config file {path} must contain a mapping at root")
    return loaded


def _compile_patterns(patterns: list[str], *, source: Path) -> tuple[str, ...]:
    for pattern in patterns:
        try:
            re.compile(pattern)
        except re.error as exc:
            raise ConfigValidationError(
                f"Invalid denied_command_patterns entry '{pattern}' in {source}: {exc}"
            ) from exc
    return tuple(patterns)


def _build_settings(doc: dict[str, Any], source: Path) -> Settings:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    defaults = Settings()
    return Settings(
        applications_dir=doc.get("applications_dir", defaults.applications_dir),
        default_xcode_path=doc.get("default_xcode_path", defaults.default_xcode_path).rstrip("/"),
        command_timeout_s=float(doc.get("command_timeout_s", defaults.command_timeout_s)),
        build_timeout_s=float(doc.get("build_timeout_s", defaults.build_timeout_s)),
        log_stream_timeout_s=float(doc.get("log_stream_timeout_s", defaults.log_stream_timeout_s)),
        device_cache_ttl_s=float(doc.get("device_cache_ttl_s", defaults.device_cache_ttl_s)),
        denied_command_patterns=_compile_patterns(
            list(doc.get("denied_command_patterns", [])),
            source=source,
        ),
    )


def load_settings(path: Path | None = None) -> Settings:
    """Load settings from `path`, the env override, or the XDG config location.

    A missing file at the implicit location means defaults; an explicitly named
    file that cannot be read is an error.
    """
    explicit = path is not None or bool(os.environ.get(CONFIG_ENV_VAR))
    source = path or config_path()
    if not source.exists() and not explicit:
        LOGGER.debug("No config file at %s, using defaults", source)
        return Settings()
    settings = _build_settings(_read_yaml(source), source)
    LOGGER.debug("Loaded settings from %s", source)
    return settings

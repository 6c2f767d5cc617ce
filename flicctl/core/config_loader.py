"""Client configuration loading and validation from YAML."""

from __future__ import annotations

import json
import logging
import os
from importlib import resources
from pathlib import Path
from typing import Any

import yaml
from jsonschema import ValidationError, validators

from flicctl.core.enums import LatencyMode
from flicctl.core.errors import ConfigLoadError, ConfigValidationError
from flicctl.core.model import ClientConfig

LOGGER = logging.getLogger(__name__)

_CONFIG_NAMES = ("config.yaml", "config.yml")


class UniqueKeyLoader(yaml.SafeLoader):
    """YAML loader that rejects duplicate mapping keys."""


UniqueKeyLoader.yaml_implicit_resolvers = {
    key: list(value) for key, value in yaml.SafeLoader.yaml_implicit_resolvers.items()
}

# "on"/"off"/"yes"/"no" stay strings.
for first_char, mappings in list(UniqueKeyLoader.yaml_implicit_resolvers.items()):
    UniqueKeyLoader.yaml_implicit_resolvers[first_char] = [
        (tag, regexp)
        for tag, regexp in mappings
        if tag != "tag:yaml.org,2002:bool"
    ]


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


def _load_schema_validator() -> Any:
    schema_text = resources.files("flicctl.schemas").joinpath("config.schema.json").read_text(
        encoding="utf-8"
    )
    schema = json.loads(schema_text)
    validator_cls = validators.validator_for(schema)
    validator_cls.check_schema(schema)
    return validator_cls(schema)


def config_dir() -> Path:
    xdg_config = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return xdg_config / "flicctl"


def default_config_path() -> Path | None:
    """Return the first existing config file under the XDG config dir."""
    directory = config_dir()
    for name in _CONFIG_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


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


def _build_config(doc: dict[str, Any], source: Path) -> ClientConfig:
    validator = _load_schema_validator()
    try:
        validator.validate(doc)
    except ValidationError as exc:
        path = ".".join(str(p) for p in exc.path)
        where = f" ({path})" if path else ""
        raise ConfigValidationError(f"Schema validation failed for {source}{where}: {exc.message}") from exc

    defaults = ClientConfig()
    daemon = doc.get("daemon", {})
    channel = doc.get("connection_channel", {})
    latency = channel.get("latency_mode")
    return ClientConfig(
        host=daemon.get("host", defaults.host),
        port=int(daemon.get("port", defaults.port)),
        connect_timeout_s=float(daemon.get("connect_timeout_s", defaults.connect_timeout_s)),
        latency_mode=LatencyMode[latency.upper()] if latency else defaults.latency_mode,
        auto_disconnect_time=int(channel.get("auto_disconnect_time", defaults.auto_disconnect_time)),
    )


def load_config(path: Path | str | None = None) -> ClientConfig:
    """Load the client configuration.

    With no ``path`` the XDG config directory is searched; when no file
    exists there the built-in defaults are returned. An explicit ``path``
    must exist.
    """
    if path is None:
        found = default_config_path()
        if found is None:
            LOGGER.debug("No config file under %s, using defaults", config_dir())
            return ClientConfig()
        source = found
    else:
        source = Path(path)

    config = _build_config(_read_yaml(source), source)
    LOGGER.debug("Loaded config from %s", source)
    return config

"""
File-based configuration sources.

Env-style files (.env, .env.local) are read with python-dotenv and their values
coerced to bool/int/float/JSON where they look like one. JSON and YAML files
must contain a mapping at the top level.
"""

import json
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from dotenv import dotenv_values

from ..exceptions import ConfigLoadError
from .tree import expand_dotted

_INT = re.compile(r"^\d+$")
_FLOAT = re.compile(r"^\d+\.\d+$")


@dataclass
class ConfigSource:
    """A configuration file merged on top of the defaults."""
    path: Path
    format: str  # 'env', 'json', 'yaml'
    required: bool = False
    watched: bool = False

    @property
    def name(self) -> str:
        return str(self.path)

    @classmethod
    def from_path(cls, path: Union[str, Path], required: bool = False, watched: bool = False) -> "ConfigSource":
        return cls(Path(path), detect_format(path), required=required, watched=watched)


def detect_format(path: Union[str, Path]) -> str:
    path = Path(path)
    if path.name.startswith('.env'):
        return 'env'
    suffix = path.suffix.lower()
    if suffix == '.json':
        return 'json'
    if suffix in ('.yaml', '.yml'):
        return 'yaml'
    raise ConfigLoadError(str(path), f"Unsupported config file format: {suffix or path.name}")


def default_sources(base_dir: Union[str, Path] = ".", environment: str = "development") -> List[ConfigSource]:
    """Standard source list, lowest precedence first."""
    base = Path(base_dir)
    return [
        ConfigSource.from_path(base / '.env', watched=True),
        ConfigSource.from_path(base / '.env.local'),
        ConfigSource.from_path(base / 'config' / 'default.json', watched=True),
        ConfigSource.from_path(base / 'config' / 'default.yaml'),
        ConfigSource.from_path(base / 'config' / f'{environment}.json'),
    ]


def coerce_value(value: str) -> Any:
    """Convert an env-file string into the scalar or JSON value it spells."""
    lowered = value.lower()
    if lowered == 'true':
        return True
    if lowered == 'false':
        return False
    if _INT.match(value):
        return int(value)
    if _FLOAT.match(value):
        return float(value)
    if (value.startswith('{') and value.endswith('}')) or (value.startswith('[') and value.endswith(']')):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            return value
    return value


def parse_env_file(path: Path) -> Dict[str, Any]:
    values = dotenv_values(path)
    flat = {key: coerce_value(value) for key, value in values.items() if value is not None}
    return expand_dotted(flat)


def parse_structured_file(path: Path, fmt: str) -> Dict[str, Any]:
    content = path.read_text(encoding='utf-8')
    try:
        if fmt == 'json':
            data = json.loads(content) if content.strip() else {}
        else:
            data = yaml.safe_load(content) or {}
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigLoadError(str(path), str(e)) from e
    if not isinstance(data, dict):
        raise ConfigLoadError(str(path), f"Top-level document must be a mapping, got {type(data).__name__}")
    return data


def load_source(source: ConfigSource) -> Optional[Dict[str, Any]]:
    """
    Parse a source file.

    Returns None when the file does not exist. Raises ConfigLoadError when the
    file exists but cannot be read or parsed.
    """
    if not source.path.exists():
        return None
    try:
        if source.format == 'env':
            return parse_env_file(source.path)
        if source.format in ('json', 'yaml'):
            return parse_structured_file(source.path, source.format)
    except OSError as e:
        raise ConfigLoadError(source.name, str(e)) from e
    raise ConfigLoadError(source.name, f"Unsupported config file format: {source.format}")

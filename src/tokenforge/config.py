"""
config.py — Platform and file configuration.

A build config names the resolved token source and, per platform, where
files go and how each one is filtered and formatted:

    source: tokens.json
    platforms:
      css:
        buildPath: build/css/
        options:
          outputReferences: true
        files:
          - destination: variables.css
            format: css/variables
            filter:
              attributes:
                category: color

JSON (.json) and YAML (.yaml, .yml) files are both accepted. Filters are
given as `matches` criteria (see filters.matches).
"""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, Optional, Tuple

import orjson
import yaml

from tokenforge.errors import ConfigurationError
from tokenforge.filters import Predicate, matches
from tokenforge.formats import get_format


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FileSpec:
    """One output file: where it goes, which tokens it holds, how it is rendered."""
    destination: str
    format: Any
    filter: Optional[Predicate] = None
    options: Mapping[str, Any] = field(default_factory=dict)
    # Overrides the formatter's own nested flag when set
    nested: Optional[bool] = None


@dataclass(frozen=True)
class PlatformConfig:
    name: str = ''
    build_path: Optional[str] = None
    options: Mapping[str, Any] = field(default_factory=dict)
    files: Tuple[FileSpec, ...] = ()


@dataclass(frozen=True)
class BuildConfig:
    source: Path
    platforms: Dict[str, PlatformConfig]


def _read_config_file(config_path: Path) -> Any:
    suffix = config_path.suffix.lower()
    try:
        with open(config_path, 'rb') as f:
            if suffix in ('.yaml', '.yml'):
                return yaml.safe_load(f)
            return orjson.loads(f.read())
    except (orjson.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Invalid configuration {config_path}: {e}") from e


def parse_file_spec(raw: Any, platform_name: str = '') -> FileSpec:
    """Build a FileSpec from a raw `files` entry."""
    where = f"platform '{platform_name}'" if platform_name else 'file list'
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"{where}: each file must be a mapping")

    destination = raw.get('destination')
    if not isinstance(destination, str) or not destination:
        raise ConfigurationError(f"{where}: file is missing a destination", field='destination')

    format_name = raw.get('format')
    if not isinstance(format_name, str):
        raise ConfigurationError(f"{where}: {destination} has no format", field='format')

    raw_filter = raw.get('filter')
    predicate: Optional[Callable] = None
    if raw_filter is not None:
        if not isinstance(raw_filter, Mapping):
            raise ConfigurationError(f"{where}: {destination} filter must be a mapping", field='filter')
        predicate = matches(raw_filter)

    nested = raw.get('nested')
    if nested is not None and not isinstance(nested, bool):
        raise ConfigurationError(f"{where}: {destination} nested must be true or false", field='nested')

    return FileSpec(
        destination=destination,
        format=get_format(format_name),
        filter=predicate,
        options=dict(raw.get('options') or {}),
        nested=nested,
    )


def parse_platform(name: str, raw: Any) -> PlatformConfig:
    if not isinstance(raw, Mapping):
        raise ConfigurationError(f"Platform '{name}' must be a mapping")

    build_path = raw.get('buildPath')
    if build_path is not None and not isinstance(build_path, str):
        raise ConfigurationError(f"Platform '{name}': buildPath must be a string", field='buildPath')

    files = raw.get('files')
    if files is None:
        files = []
    if not isinstance(files, list):
        raise ConfigurationError(f"Platform '{name}': files must be a list", field='files')

    return PlatformConfig(
        name=name,
        build_path=build_path,
        options=dict(raw.get('options') or {}),
        files=tuple(parse_file_spec(entry, name) for entry in files),
    )


def load_config(config_path: Path) -> BuildConfig:
    """
    Load and validate a build configuration.

    Args:
        config_path: YAML or JSON config file

    Returns:
        BuildConfig with the token source resolved relative to the config file

    Raises:
        ConfigurationError: malformed config, unknown format, bad file entry
    """
    logger.info(f"Loading config from {config_path}")
    data = _read_config_file(config_path)

    if not isinstance(data, Mapping):
        raise ConfigurationError(f"Configuration {config_path} is empty or not a mapping")

    source = data.get('source')
    if not isinstance(source, str) or not source:
        raise ConfigurationError(f"Configuration {config_path} has no token source", field='source')

    raw_platforms = data.get('platforms') or {}
    if not isinstance(raw_platforms, Mapping):
        raise ConfigurationError('platforms must be a mapping', field='platforms')

    platforms = {name: parse_platform(name, raw) for name, raw in raw_platforms.items()}
    logger.info(f"  -> {len(platforms)} platform(s), "
                f"{sum(len(p.files) for p in platforms.values())} file(s)")

    return BuildConfig(source=config_path.parent / source, platforms=platforms)

#!/usr/bin/env python3
"""
Configuration Layer for the nftreg CLI

Settings are layered: built-in defaults, an optional named profile, the
first configuration file found (or one given explicitly), and finally
NFTREG_* environment variables. Later layers override earlier ones key by
key.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple, Union

import yaml

# NFTREG_STORAGE__DATA_DIR -> {'storage': {'data_dir': ...}}
ENV_PREFIX = 'NFTREG_'
ENV_NESTING = '__'

VALID_OUTPUT_FORMATS = ['table', 'json', 'yaml']
VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

DEFAULT_CONFIG = {
    'storage': {
        'data_dir': '~/.nftreg/data',
        'state_file': 'collection.json',
        'backup_count': 5
    },
    'cli': {
        'output_format': 'table',
        'verbose': 0
    },
    'logging': {
        'level': 'WARNING',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    },
    # Applied by `init` when the matching option is omitted
    'collection': {
        'base_uri': '',
        'uri_suffix': '.json',
        'min_token_id': 1
    }
}

PROFILES = {
    'production': {
        'cli': {'verbose': 0},
        'logging': {'level': 'WARNING'},
        'storage': {'backup_count': 10}
    },
    'development': {
        'cli': {'verbose': 2},
        'logging': {'level': 'DEBUG'},
        'storage': {'data_dir': './.nftreg/data', 'backup_count': 2}
    }
}


def get_config_search_paths() -> List[Path]:
    """Candidate configuration files, most specific first."""
    project_dir = Path.cwd()
    user_dir = Path.home() / '.nftreg'
    system_dir = Path('/etc/nftreg')

    return [
        project_dir / '.nftreg.yml',
        project_dir / '.nftreg.json',
        project_dir / 'nftreg.config.yml',
        project_dir / 'nftreg.config.json',
        user_dir / 'config.yml',
        user_dir / 'config.json',
        system_dir / 'config.yml',
        system_dir / 'config.json',
    ]


def _is_non_negative_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 0


class ConfigurationManager:
    """Layered CLI settings with dot-path access."""

    def __init__(self, config_file: Optional[str] = None, profile: Optional[str] = None):
        """
        Args:
            config_file: Configuration file to use instead of searching
            profile: Named profile layered over the defaults
        """
        self.logger = logging.getLogger('nftreg-cli.config')
        self.config_file = config_file
        self.profile = profile
        self._merged: Optional[Dict[str, Any]] = None
        self._sources: List[str] = []

    def load(self) -> Dict[str, Any]:
        """
        Merge every configuration layer, caching the result.

        Raises:
            ValueError: If the profile is unknown or a file is malformed
            FileNotFoundError: If an explicit config file does not exist
        """
        if self._merged is None:
            layers = self._collect_layers()
            self._sources = [name for name, _ in layers]
            self._merged = self._deep_merge(*(layer for _, layer in layers))
            self._expand_paths(self._merged)
        return self._merged

    def _collect_layers(self) -> List[Tuple[str, Dict[str, Any]]]:
        layers: List[Tuple[str, Dict[str, Any]]] = [("defaults", DEFAULT_CONFIG)]

        if self.profile:
            try:
                layers.append((f"profile:{self.profile}", PROFILES[self.profile]))
            except KeyError:
                raise ValueError(f"Unknown configuration profile: {self.profile}")

        config_path = self._find_config_file()
        if config_path is not None:
            layers.append((f"file:{config_path}", self._load_config_file(config_path)))
            self.logger.debug(f"Using configuration file {config_path}")

        env_layer = self._load_environment_variables()
        if env_layer:
            layers.append(("environment", env_layer))

        return layers

    def _find_config_file(self) -> Optional[Path]:
        if self.config_file:
            path = Path(self.config_file)
            if not path.exists():
                raise FileNotFoundError(f"Config file not found: {path}")
            return path

        return next((p for p in get_config_search_paths() if p.exists()), None)

    def _load_config_file(self, path: Path) -> Dict[str, Any]:
        """Parse a YAML or JSON configuration file into a mapping."""
        loaders = {'.yml': yaml.safe_load, '.yaml': yaml.safe_load, '.json': json.load}
        loader = loaders.get(path.suffix)
        if loader is None:
            raise ValueError(f"Unknown config file format: {path}")

        with open(path, 'r') as f:
            data = loader(f)

        if data is None:
            return {}
        if not isinstance(data, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")
        return data

    def _load_environment_variables(self) -> Dict[str, Any]:
        overrides: Dict[str, Any] = {}

        for name, raw in os.environ.items():
            if not name.startswith(ENV_PREFIX):
                continue

            *parents, leaf = name[len(ENV_PREFIX):].lower().split(ENV_NESTING)
            section = overrides
            for parent in parents:
                section = section.setdefault(parent, {})
            section[leaf] = self._parse_env_value(raw)

        return overrides

    def _parse_env_value(self, value: str) -> Union[str, int, float, bool, list, dict]:
        """Interpret an environment value as JSON, then as a boolean word, else keep the string."""
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            pass

        lowered = value.lower()
        if lowered in ('true', 'yes', 'on'):
            return True
        if lowered in ('false', 'no', 'off'):
            return False
        return value

    def _deep_merge(self, *layers: Dict[str, Any]) -> Dict[str, Any]:
        """Merge mappings recursively into a fresh dict; later layers win."""
        merged: Dict[str, Any] = {}

        for layer in layers:
            for key, value in layer.items():
                if isinstance(value, dict):
                    base = merged.get(key)
                    merged[key] = self._deep_merge(base, value) if isinstance(base, dict) else self._deep_merge(value)
                else:
                    merged[key] = value

        return merged

    def _expand_paths(self, section: Dict[str, Any]) -> None:
        for key, value in section.items():
            if isinstance(value, dict):
                self._expand_paths(value)
            elif isinstance(value, str) and ('~' in value or '$' in value):
                section[key] = os.path.expanduser(os.path.expandvars(value))

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a dot-separated key such as 'storage.data_dir'."""
        node: Any = self.load()

        for part in key_path.split('.'):
            if not isinstance(node, dict) or part not in node:
                return default
            node = node[part]

        return node

    def set(self, key_path: str, value: Any) -> None:
        """Override a dot-separated key in the loaded configuration."""
        *parents, leaf = key_path.split('.')
        section = self.load()
        for parent in parents:
            section = section.setdefault(parent, {})
        section[leaf] = value

    def save(self, path: Optional[str] = None, format: str = 'yaml') -> Path:
        """
        Write the effective configuration to disk.

        Args:
            path: Destination; defaults to the project file in the working directory
            format: 'yaml' or 'json'

        Returns:
            The path written
        """
        if path:
            target = Path(path)
        else:
            target = Path.cwd() / ('.nftreg.yml' if format == 'yaml' else '.nftreg.json')
        target.parent.mkdir(parents=True, exist_ok=True)

        settings = self.load()
        with open(target, 'w') as f:
            if format == 'yaml':
                yaml.safe_dump(settings, f, default_flow_style=False, sort_keys=False)
            else:
                json.dump(settings, f, indent=2)

        self.logger.info(f"Wrote configuration to {target}")
        return target

    def validate(self) -> List[str]:
        """Check the effective configuration and describe every problem found."""
        problems = []

        if not self.get('storage.data_dir'):
            problems.append("Storage data directory is required")
        if not self.get('storage.state_file'):
            problems.append("Storage state file name is required")
        if not _is_non_negative_int(self.get('storage.backup_count')):
            problems.append("Storage backup count must be a non-negative integer")

        output_format = self.get('cli.output_format')
        if output_format not in VALID_OUTPUT_FORMATS:
            problems.append(f"Invalid output format: {output_format}")
        if not _is_non_negative_int(self.get('cli.verbose')):
            problems.append("CLI verbosity must be a non-negative integer")

        level = str(self.get('logging.level', '')).upper()
        if level not in VALID_LOG_LEVELS:
            problems.append(f"Invalid log level: {level}")

        if not _is_non_negative_int(self.get('collection.min_token_id')):
            problems.append("Collection minimum token ID must be a non-negative integer")

        return problems

    def get_sources(self) -> List[str]:
        """Names of the layers that made up the loaded configuration."""
        self.load()
        return list(self._sources)

    def reset(self) -> None:
        """Drop the cached configuration so the next access reloads it."""
        self._merged = None
        self._sources = []


def load_config(config_file: Optional[str] = None,
                profile: Optional[str] = None) -> Dict[str, Any]:
    """Load the merged configuration in one call."""
    return ConfigurationManager(config_file, profile).load()

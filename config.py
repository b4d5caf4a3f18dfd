"""
config.py - System Configuration Settings
==========================================
Central configuration for the WebAssembly profile reporter.
"""

import json
from typing import Dict, Any


class Config:
    """System-wide configuration settings."""

    # ============================================================================
    # PROFILE INPUT CONFIGURATION
    # ============================================================================

    PROFILE = {
        'columns': {
            'module_index': 'module_index',
            'func_index': 'func_index',
            'duration': 'duration'
        },
        'chunk_size': 10000,  # CSV rows per pandas chunk
        'max_index': 2 ** 32 - 1,  # u32
        'max_duration': 2 ** 64 - 1  # u64 microseconds
    }

    # ============================================================================
    # NAME SECTION CONFIGURATION
    # ============================================================================

    NAMES = {
        'section_name': 'name',
        'unknown_function': '<index:{index}>',
        'unknown_module': '<module:{index}>'
    }

    # ============================================================================
    # REPORTING CONFIGURATION
    # ============================================================================

    REPORTING = {
        'formats': ['txt', 'json', 'html', 'csv'],
        'default_format': 'txt',
        'html_title': 'WebAssembly Profile Report',
        'date_format': '%Y-%m-%d %H:%M:%S'
    }

    # ============================================================================
    # LOGGING CONFIGURATION
    # ============================================================================

    LOGGING = {
        'level': 'WARNING',
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        'date_format': '%Y-%m-%d %H:%M:%S',
        'file': None,
        'max_bytes': 10 * 1024 * 1024,  # 10 MB
        'backup_count': 5,
        'console_output': True
    }

    @classmethod
    def get(cls, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key."""
        keys = key.split('.')
        value = cls

        for k in keys:
            if isinstance(value, dict):
                if k not in value:
                    return default
                value = value[k]
            elif hasattr(value, k):
                value = getattr(value, k)
            else:
                return default

        return value

    @classmethod
    def set(cls, key: str, value: Any):
        """Set configuration value by dot-notation key."""
        keys = key.split('.')
        target = cls

        for k in keys[:-1]:
            if isinstance(target, dict) and k in target:
                target = target[k]
            elif not isinstance(target, dict) and hasattr(target, k):
                target = getattr(target, k)
            else:
                raise KeyError(f"Configuration key not found: {key}")

        final_key = keys[-1]
        if isinstance(target, dict):
            target[final_key] = value
        elif hasattr(target, final_key):
            setattr(target, final_key, value)
        else:
            raise KeyError(f"Cannot set configuration key: {key}")

    @classmethod
    def to_dict(cls) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        result = {}

        for attr in dir(cls):
            if not attr.startswith('_') and attr.isupper():
                value = getattr(cls, attr)
                if not callable(value):
                    result[attr] = value

        return result

    @classmethod
    def from_file(cls, filepath: str):
        """Load configuration from JSON or YAML file.

        Sections are merged recursively into the existing dicts, so a file
        only needs to list the settings it overrides. Raises ValueError for
        unparseable files and for values whose shape does not match the
        setting they replace.
        """
        filepath = str(filepath)

        with open(filepath, 'r') as f:
            if filepath.endswith('.json'):
                config_data = json.load(f)
            elif filepath.endswith(('.yml', '.yaml')):
                import yaml
                try:
                    config_data = yaml.safe_load(f) or {}
                except yaml.YAMLError as e:
                    raise ValueError(f"Invalid YAML: {e}") from e
            else:
                raise ValueError(f"Unsupported config file format: {filepath}")

        if not isinstance(config_data, dict):
            raise ValueError("Configuration file must contain a mapping of sections")

        for key, value in config_data.items():
            if not hasattr(cls, key):
                continue
            current = getattr(cls, key)
            if isinstance(current, dict):
                _merge(current, value, key)
            else:
                setattr(cls, key, value)


def _merge(target: Dict[str, Any], overrides: Any, path: str):
    """Recursively merge ``overrides`` into ``target`` in place."""
    if not isinstance(overrides, dict):
        raise ValueError(f"{path} must be a mapping, got {type(overrides).__name__}")

    for key, value in overrides.items():
        current = target.get(key)
        if isinstance(current, dict):
            _merge(current, value, f"{path}.{key}")
        else:
            target[key] = value

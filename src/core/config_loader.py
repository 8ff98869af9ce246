"""
Configuration loading for the tracking controller.

Defaults are overlaid with a YAML file when one is given. Nested
sections are merged key by key so a file only needs the values it
changes.
"""
import copy
import logging
import os
from typing import Any, Dict, Optional

import yaml


logger = logging.getLogger("ConfigLoader")

DEFAULT_CONFIG: Dict[str, Any] = {
    'simulation_mode': True,
    'sensor': {
        'name': 'pixy',
        'port': '/dev/ttyS0',
        'baudrate': 19200,
        'timeout': 0.01,
        'poll_interval': 0.001,
        'freshness_window': 0.1,
        'sync_warning_after': 1.0
    },
    'indicator': {
        'name': 'leds',
        'pin': 18,
        'active_high': True,
        'mode': 'off',
        'interval': 1.0,
        'on_duration': 1.0,
        'off_duration': 1.0,
        'pulse_count': 1,
        'message': ''
    },
    'status': {
        'enabled': True,
        'priority': 'normal'
    },
    'run_duration': 10.0
}


def _merge(base: Dict[str, Any], overlay: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


def load_config(config_path: Optional[str] = None) -> Dict[str, Any]:
    """
    Load the controller configuration.

    Args:
        config_path: Path to a YAML file (optional)

    Returns:
        Configuration dictionary with defaults filled in
    """
    config = copy.deepcopy(DEFAULT_CONFIG)

    if config_path and os.path.exists(config_path):
        try:
            with open(config_path, 'r') as f:
                loaded_config = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not load config from {config_path}: {e}")
            return config

        if isinstance(loaded_config, dict):
            _merge(config, loaded_config)
        elif loaded_config is not None:
            logger.warning(f"Ignoring config {config_path}: top level is not a mapping")
    elif config_path:
        logger.info(f"Config {config_path} not found, using defaults")

    return config

"""
Configuration loading utilities.
"""
import os
import yaml
from typing import Dict, Any
from .settings import SalonOSSettings


def load_yaml_config(path: str) -> Dict[str, Any]:
    """Load configuration from a YAML file."""
    if not os.path.exists(path):
        return {}

    with open(path, 'r') as f:
        return yaml.safe_load(f) or {}


def load_settings_from_yaml(path: str) -> SalonOSSettings:
    """Load SalonOSSettings from a YAML file.

    Keys that are not settings fields are ignored; missing keys keep their
    defaults.
    """
    data = load_yaml_config(path)
    valid_keys = SalonOSSettings.__annotations__.keys()
    filtered_data = {k: v for k, v in data.items() if k in valid_keys}
    if filtered_data.get('critical_ratio') is not None:
        filtered_data['critical_ratio'] = str(filtered_data['critical_ratio'])
    return SalonOSSettings(**filtered_data)

"""
Configuration for salon_os.
"""
from .settings import SalonOSSettings, settings
from .loader import load_settings_from_yaml, load_yaml_config

__all__ = [
    'SalonOSSettings',
    'settings',
    'load_settings_from_yaml',
    'load_yaml_config',
]

"""
Utilities

Shared helpers for the backend (config file loading).
"""

from .config import load_config, get_config_path

__all__ = ["load_config", "get_config_path"]

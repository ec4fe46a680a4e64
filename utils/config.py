"""
Config file loader.
Reads the service TOML config (config/fernfs.toml by default).

@.architecture
Incoming: config/settings.py, FERNFS_CONFIG_FILE env var --- {optional config path, load_config calls}
Processing: load_config(), get_config_path() --- {2 jobs: config_file_location, toml_parsing}
Outgoing: config/settings.py --- {Dict[str, Any] raw config sections}
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import toml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = Path(__file__).parent.parent / "config" / "fernfs.toml"


def get_config_path() -> Path:
    """Config file location, overridable with FERNFS_CONFIG_FILE."""
    override = os.getenv("FERNFS_CONFIG_FILE")
    return Path(override) if override else DEFAULT_CONFIG_FILE


def load_config(config_file: Optional[Path] = None) -> Dict[str, Any]:
    """Load configuration sections from the TOML file ({} if absent or unreadable)."""
    path = config_file or get_config_path()
    try:
        with open(path, "r") as f:
            return toml.load(f)
    except FileNotFoundError:
        logger.debug(f"No config file at {path}, using defaults")
        return {}
    except (toml.TomlDecodeError, OSError) as e:
        logger.warning(f"Failed to load config file {path}: {e}")
        return {}

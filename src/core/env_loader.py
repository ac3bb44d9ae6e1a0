#!/usr/bin/env python3
"""
Environment variable loader with .env file support.

Safely loads environment variables from .env file if present.
"""

import os
from pathlib import Path
from typing import Optional
import logging

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIXES = ('your-', 'your_')


def load_env_file(env_file_path: str = ".env") -> int:
    """
    Load environment variables from .env file if it exists.

    Args:
        env_file_path: Path to .env file (default: ".env" in project root)

    Returns:
        Number of variables loaded
    """
    # Find project root (where .env should be)
    current_dir = Path(__file__).parent
    project_root = current_dir.parent.parent
    env_path = Path(env_file_path) if Path(env_file_path).is_absolute() else project_root / env_file_path

    if not env_path.exists():
        logger.debug(f"No .env file found at {env_path}")
        return 0

    loaded_count = 0
    try:
        with open(env_path, 'r', encoding='utf-8') as f:
            lines = f.readlines()

        for line_num, line in enumerate(lines, 1):
            line = line.strip()

            # Skip empty lines and comments
            if not line or line.startswith('#'):
                continue

            if line.startswith('export '):
                line = line[len('export '):]

            if '=' not in line:
                logger.warning(f"Invalid .env format at line {line_num}: {line}")
                continue

            key, value = line.split('=', 1)
            key = key.strip()
            value = value.strip()

            if value.startswith('"') and value.endswith('"'):
                value = value[1:-1]
            elif value.startswith("'") and value.endswith("'"):
                value = value[1:-1]

            # Env vars take precedence
            if key not in os.environ:
                os.environ[key] = value
                loaded_count += 1
                logger.debug(f"Loaded {key} from .env")
            else:
                logger.debug(f"Skipped {key} (already in environment)")

        logger.info(f"Loaded {loaded_count} variables from {env_path}")

    except OSError as e:
        logger.error(f"Error loading .env file {env_path}: {e}")

    return loaded_count


def get_env_var(key: str, default: Optional[str] = None, required: bool = False) -> Optional[str]:
    """
    Get environment variable with optional default and required validation.

    Args:
        key: Environment variable name
        default: Default value if not found
        required: Whether the variable is required

    Returns:
        Environment variable value

    Raises:
        ValueError: If required variable is missing
    """
    value = os.environ.get(key, default)

    if required and not value:
        raise ValueError(f"Required environment variable {key} is not set")

    return value


def is_placeholder(value: Optional[str]) -> bool:
    """Check whether a configured value is empty or a template placeholder."""
    if not value or not value.strip():
        return True
    lowered = value.strip().lower()
    return lowered.startswith(PLACEHOLDER_PREFIXES) or 'placeholder' in lowered


# Auto-load .env file when module is imported
load_env_file()

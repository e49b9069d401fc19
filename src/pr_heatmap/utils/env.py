"""Environment variable helpers."""

import os


def is_env_truthy(env_var_name: str, default: str = "") -> bool:
    """Check if an environment variable is set to a truthy value.

    Args:
        env_var_name: Name of the environment variable
        default: Value used when the variable is unset

    Returns:
        True if the value is one of 'true', '1', 'yes' (case-insensitive)
    """
    return os.getenv(env_var_name, default).lower() in ("true", "1", "yes")

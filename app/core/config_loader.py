"""Configuration loader for static YAML configuration.

This module loads the per-collaborator retry policies and call limits.
Policies are loaded once and cached; they are never mutated at runtime.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from app.config.retry import RetryPolicyConfig, default_retry_config
from app.core.exceptions import ConfigError, ConfigValidationError
from app.core.logging import get_logger

logger = get_logger(__name__)

# Base directory for relative config paths (project root)
_PROJECT_ROOT = Path(__file__).parent.parent.parent


def _resolve(path: str | Path) -> Path:
    """Resolve a config path relative to the project root."""
    candidate = Path(path)
    return candidate if candidate.is_absolute() else _PROJECT_ROOT / candidate


def _load_yaml_file(path: Path, name: str) -> dict[str, Any]:
    """Load a YAML file from disk.

    Args:
        path: Path to the YAML file.
        name: Human-readable name for error messages.

    Returns:
        Parsed YAML content as dictionary.

    Raises:
        ConfigError: If file doesn't exist or parsing fails.
    """
    if not path.exists():
        logger.error("Config file not found", name=name, path=str(path))
        raise ConfigError(f"Config file not found: {path}", config_path=str(path))

    try:
        with open(path, encoding="utf-8") as f:
            content = yaml.safe_load(f)

        if not isinstance(content, dict):
            raise ConfigError(f"Config file must contain a YAML object: {path}")

        logger.debug("Loaded config file", name=name, path=str(path))
        return content

    except yaml.YAMLError as e:
        logger.error("YAML parsing failed", name=name, path=str(path), error=str(e))
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e


def parse_retry_config(data: dict[str, Any], source: str = "<memory>") -> RetryPolicyConfig:
    """Validate raw retry configuration data.

    Services missing from ``data`` keep their built-in policy.

    Args:
        data: Parsed YAML content
        source: Where the data came from, for error messages

    Returns:
        Validated RetryPolicyConfig

    Raises:
        ConfigValidationError: If the data doesn't match the schema
    """
    defaults = default_retry_config()
    try:
        loaded = RetryPolicyConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigValidationError(
            f"Invalid retry policy configuration: {e}", config_path=source
        ) from e

    return RetryPolicyConfig(
        policies={**defaults.policies, **loaded.policies},
        limits={**defaults.limits, **loaded.limits},
        default_limit=loaded.default_limit,
    )


@lru_cache(maxsize=4)
def load_retry_policies(path: str | None = None) -> RetryPolicyConfig:
    """Load retry policies from YAML, falling back to built-in defaults.

    Args:
        path: YAML path (absolute or relative to the project root).
            None returns the built-in defaults.

    Returns:
        RetryPolicyConfig for every collaborator service

    Raises:
        ConfigError: If the file exists but cannot be parsed
        ConfigValidationError: If the file content is invalid
    """
    if path is None:
        return default_retry_config()

    resolved = _resolve(path)
    if not resolved.exists():
        logger.warning("Retry policy file missing, using defaults", path=str(resolved))
        return default_retry_config()

    config = parse_retry_config(_load_yaml_file(resolved, "retry_policies"), str(resolved))
    logger.info(
        "Retry policies loaded",
        path=str(resolved),
        services=sorted(config.policies),
    )
    return config


def clear_config_cache() -> None:
    """Clear cached configurations.

    Call this if config files are modified and need to be reloaded.
    """
    load_retry_policies.cache_clear()
    logger.info("Config cache cleared")

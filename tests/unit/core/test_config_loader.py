"""Tests for the retry policy loader."""

import pytest
import yaml

from app.config.retry import IMAGE_GENERATION, RENDERING, TEXT_GENERATION
from app.core.config_loader import (
    clear_config_cache,
    load_retry_policies,
    parse_retry_config,
)
from app.core.exceptions import ConfigError, ConfigValidationError, ErrorKind


@pytest.fixture(autouse=True)
def _clear_cache():
    """Reset the loader cache around each test."""
    clear_config_cache()
    yield
    clear_config_cache()


@pytest.fixture
def write_yaml(tmp_path):
    """Write a YAML document and return its path."""

    def _write(data, name="retry.yaml") -> str:
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data) if not isinstance(data, str) else data)
        return str(path)

    return _write


@pytest.mark.unit
def test_none_returns_defaults():
    config = load_retry_policies(None)

    assert config.policies[TEXT_GENERATION].max_retries == 3
    assert config.limit_for(IMAGE_GENERATION).max_concurrency == 1


@pytest.mark.unit
def test_missing_file_returns_defaults(tmp_path):
    config = load_retry_policies(str(tmp_path / "absent.yaml"))

    assert config.policies[RENDERING].backoff_multiplier == 1.5


@pytest.mark.unit
def test_bundled_policy_file_loads():
    config = load_retry_policies("config/retry_policies.yaml")

    assert set(config.policies) >= {TEXT_GENERATION, IMAGE_GENERATION, RENDERING}
    assert "unsafe_content" in config.policies[IMAGE_GENERATION].non_retryable_errors


@pytest.mark.unit
def test_file_overrides_merge_with_defaults(write_yaml):
    path = write_yaml(
        {
            "policies": {
                "rendering": {
                    "max_retries": 4,
                    "base_delay": 1.0,
                    "max_delay": 8.0,
                    "non_retryable_errors": ["Missing_Assets"],
                    "non_retryable_kinds": ["not_found"],
                }
            },
            "limits": {"rendering": {"max_concurrency": 2, "rate_per_second": 1.0, "burst": 2}},
        }
    )

    config = load_retry_policies(path)

    rendering = config.policies[RENDERING]
    assert rendering.max_retries == 4
    assert rendering.non_retryable_errors == ["missing_assets"]
    assert rendering.non_retryable_kinds == [ErrorKind.NOT_FOUND]
    assert config.limit_for(RENDERING).max_concurrency == 2
    assert config.policies[TEXT_GENERATION].max_retries == 3


@pytest.mark.unit
def test_results_are_cached(write_yaml):
    path = write_yaml({"policies": {}})

    assert load_retry_policies(path) is load_retry_policies(path)


@pytest.mark.unit
def test_invalid_yaml_raises(write_yaml):
    path = write_yaml("policies: [unclosed")

    with pytest.raises(ConfigError):
        load_retry_policies(path)


@pytest.mark.unit
def test_non_mapping_raises(write_yaml):
    path = write_yaml("- just\n- a list\n")

    with pytest.raises(ConfigError, match="YAML object"):
        load_retry_policies(path)


@pytest.mark.unit
def test_invalid_policy_raises():
    with pytest.raises(ConfigValidationError):
        parse_retry_config({"policies": {"rendering": {"base_delay": 10.0, "max_delay": 1.0}}})


@pytest.mark.unit
def test_negative_retries_rejected():
    with pytest.raises(ConfigValidationError):
        parse_retry_config({"policies": {"narration": {"max_retries": -1}}})

"""Unit tests for retry policy configuration."""

import pytest
from pydantic import ValidationError

from app.config.retry import (
    BACKGROUND_MUSIC,
    IMAGE_GENERATION,
    NARRATION,
    PUBLISH,
    RENDERING,
    TERMINAL_KINDS,
    TEXT_GENERATION,
    TRANSIENT_KINDS,
    CollaboratorLimit,
    RetryPolicy,
    RetryPolicyConfig,
    default_retry_config,
)
from app.core.exceptions import ErrorKind


class TestRetryPolicy:
    """Tests for RetryPolicy model."""

    def test_defaults(self):
        policy = RetryPolicy()

        assert policy.max_retries == 2
        assert policy.retryable_kinds == TRANSIENT_KINDS
        assert policy.non_retryable_kinds == TERMINAL_KINDS

    def test_kind_sets_are_disjoint(self):
        assert not set(TRANSIENT_KINDS) & set(TERMINAL_KINDS)
        assert ErrorKind.UNKNOWN not in TRANSIENT_KINDS + TERMINAL_KINDS

    def test_signatures_lowercased(self):
        policy = RetryPolicy(retryable_errors=["Server_Error"], non_retryable_errors="Bad_Key")

        assert policy.retryable_errors == ["server_error"]
        assert policy.non_retryable_errors == ["bad_key"]

    def test_base_delay_above_max_rejected(self):
        with pytest.raises(ValidationError):
            RetryPolicy(base_delay=20.0, max_delay=5.0)

    def test_multiplier_below_one_rejected(self):
        with pytest.raises(ValidationError):
            RetryPolicy(backoff_multiplier=0.5)

    def test_frozen(self):
        policy = RetryPolicy()

        with pytest.raises(ValidationError):
            policy.max_retries = 5


class TestDefaultRetryConfig:
    """Tests for the built-in policies."""

    @pytest.fixture
    def config(self) -> RetryPolicyConfig:
        return default_retry_config()

    def test_every_service_has_policy(self, config):
        assert set(config.policies) == {
            TEXT_GENERATION,
            IMAGE_GENERATION,
            NARRATION,
            BACKGROUND_MUSIC,
            RENDERING,
            PUBLISH,
        }

    def test_text_generation_policy(self, config):
        policy = config.policies[TEXT_GENERATION]

        assert (policy.max_retries, policy.base_delay, policy.max_delay) == (3, 1.0, 10.0)
        assert "insufficient_quota" in policy.non_retryable_errors

    def test_rendering_has_smallest_budget(self, config):
        rendering = config.policies[RENDERING]

        assert rendering.max_retries == min(p.max_retries for p in config.policies.values())
        assert rendering.backoff_multiplier == 1.5

    def test_publish_quota_is_terminal(self, config):
        assert "quota_exceeded" in config.policies[PUBLISH].non_retryable_errors

    def test_image_generation_is_serialized(self, config):
        limit = config.limit_for(IMAGE_GENERATION)

        assert limit.max_concurrency == 1
        assert limit.rate_per_second == 0.5

    def test_unknown_service_uses_default_limit(self, config):
        assert config.limit_for("transcription") == CollaboratorLimit()

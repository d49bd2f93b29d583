"""Unit tests for ErrorClassifier."""

import pytest

from app.config.retry import (
    PUBLISH,
    RENDERING,
    TEXT_GENERATION,
    RetryPolicy,
    RetryPolicyConfig,
    default_retry_config,
)
from app.core.exceptions import CollaboratorError, ConfigNotFoundError, ErrorKind
from app.services.retry.classifier import ErrorClass, ErrorClassifier


@pytest.fixture
def classifier() -> ErrorClassifier:
    return ErrorClassifier(default_retry_config())


class TestClassify:
    """Tests for error classification."""

    @pytest.mark.unit
    def test_typed_transient_kind_is_retryable(self, classifier):
        error = CollaboratorError(TEXT_GENERATION, "slow down", kind=ErrorKind.RATE_LIMITED)

        assert classifier.classify(error, TEXT_GENERATION) == ErrorClass.RETRYABLE
        assert classifier.is_retryable(error, TEXT_GENERATION) is True

    @pytest.mark.unit
    def test_typed_terminal_kind_is_not_retryable(self, classifier):
        error = CollaboratorError(TEXT_GENERATION, "bad key", kind=ErrorKind.AUTHENTICATION)

        assert classifier.classify(error, TEXT_GENERATION) == ErrorClass.NON_RETRYABLE
        assert classifier.is_retryable(error, TEXT_GENERATION) is False

    @pytest.mark.unit
    def test_signature_match_is_case_insensitive(self, classifier):
        error = RuntimeError("Provider said: INVALID_API_KEY")

        assert classifier.classify(error, TEXT_GENERATION) == ErrorClass.NON_RETRYABLE

    @pytest.mark.unit
    def test_retryable_signature(self, classifier):
        error = RuntimeError("rendering_failed: encoder crashed")

        assert classifier.classify(error, RENDERING) == ErrorClass.RETRYABLE

    @pytest.mark.unit
    def test_non_retryable_wins_over_retryable(self, classifier):
        error = RuntimeError("timeout while checking invalid_api_key")

        assert classifier.classify(error, TEXT_GENERATION) == ErrorClass.NON_RETRYABLE

    @pytest.mark.unit
    def test_terminal_signature_beats_transient_kind(self, classifier):
        error = CollaboratorError(PUBLISH, "quota_exceeded", kind=ErrorKind.NETWORK)

        assert classifier.classify(error, PUBLISH) == ErrorClass.NON_RETRYABLE

    @pytest.mark.unit
    def test_unclassified_errors_are_retryable(self, classifier):
        error = ValueError("something unexpected")

        assert classifier.classify(error, TEXT_GENERATION) == ErrorClass.UNCLASSIFIED
        assert classifier.is_retryable(error, TEXT_GENERATION) is True

    @pytest.mark.unit
    def test_unknown_service_raises(self, classifier):
        with pytest.raises(ConfigNotFoundError):
            classifier.classify(RuntimeError("timeout"), "hologram")


class TestDelayFor:
    """Tests for backoff computation."""

    @pytest.mark.unit
    def test_exponential_growth(self, classifier):
        delays = [classifier.delay_for(attempt, TEXT_GENERATION) for attempt in range(4)]

        assert delays == [1.0, 2.0, 4.0, 8.0]

    @pytest.mark.unit
    def test_capped_at_max_delay(self, classifier):
        assert classifier.delay_for(10, TEXT_GENERATION) == 10.0

    @pytest.mark.unit
    def test_fractional_multiplier(self, classifier):
        assert classifier.delay_for(1, RENDERING) == pytest.approx(7.5)

    @pytest.mark.unit
    def test_delays_never_decrease(self):
        config = RetryPolicyConfig(
            policies={
                "svc": RetryPolicy(base_delay=0.5, max_delay=3.0, backoff_multiplier=1.7)
            }
        )
        classifier = ErrorClassifier(config)

        delays = [classifier.delay_for(attempt, "svc") for attempt in range(8)]

        assert delays == sorted(delays)
        assert max(delays) == 3.0

"""Unit tests for StateMachine."""

import pytest

from app.core.state_machine import (
    InvalidTransitionError,
    StateMachine,
    create_content_state_machine,
    create_job_state_machine,
)
from app.models.content_item import ContentStatus
from app.models.job import JobStatus


class TestStateMachine:
    """Tests for generic StateMachine."""

    @pytest.fixture
    def simple_transitions(self):
        """Create simple transition map for testing."""
        return {
            "draft": ["review"],
            "review": ["draft", "done"],
            "done": [],
        }

    @pytest.mark.unit
    def test_valid_transition(self, simple_transitions):
        sm = StateMachine("draft", simple_transitions)

        sm.transition("review")

        assert sm.current == "review"
        assert sm.allowed_transitions == ["draft", "done"]

    @pytest.mark.unit
    def test_invalid_transition_raises(self, simple_transitions):
        sm = StateMachine("draft", simple_transitions)

        with pytest.raises(InvalidTransitionError) as exc_info:
            sm.transition("done")

        assert exc_info.value.allowed == ["review"]
        assert exc_info.value.context["target"] == "done"
        assert sm.current == "draft"

    @pytest.mark.unit
    def test_terminal_state(self, simple_transitions):
        sm = StateMachine("review", simple_transitions)

        assert sm.transition_to("done") == "done"
        assert sm.is_terminal
        with pytest.raises(InvalidTransitionError, match="Allowed transitions: none"):
            sm.transition("draft")

    @pytest.mark.unit
    def test_reset_bypasses_rules(self, simple_transitions):
        sm = StateMachine("done", simple_transitions)

        sm.reset("draft")

        assert sm.current == "draft"


class TestContentStateMachine:
    """Tests for the content item lifecycle."""

    @pytest.mark.unit
    def test_default_initial_state(self):
        assert create_content_state_machine().current == ContentStatus.QUEUED

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "final",
        [ContentStatus.PUBLISHED, ContentStatus.RENDERED, ContentStatus.TEST_COMPLETE],
    )
    def test_happy_paths(self, final):
        sm = create_content_state_machine()
        sm.transition(ContentStatus.GENERATING)
        sm.transition(ContentStatus.RENDERING)
        if final == ContentStatus.PUBLISHED:
            sm.transition(ContentStatus.UPLOADING)
        sm.transition(final)

        assert sm.is_terminal

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "status",
        [
            ContentStatus.QUEUED,
            ContentStatus.GENERATING,
            ContentStatus.RENDERING,
            ContentStatus.UPLOADING,
        ],
    )
    def test_error_reachable_from_active_states(self, status):
        sm = create_content_state_machine(status.value)

        assert sm.can_transition(ContentStatus.ERROR)

    @pytest.mark.unit
    def test_cannot_skip_rendering(self):
        sm = create_content_state_machine("generating")

        assert not sm.can_transition(ContentStatus.PUBLISHED)

    @pytest.mark.unit
    def test_error_is_terminal(self):
        assert create_content_state_machine("error").is_terminal


class TestJobStateMachine:
    """Tests for the scheduled job lifecycle."""

    @pytest.mark.unit
    def test_failed_job_can_be_retried(self):
        sm = create_job_state_machine()
        sm.transition(JobStatus.RUNNING)
        sm.transition(JobStatus.FAILED)

        assert sm.transition_to(JobStatus.PENDING) == JobStatus.PENDING

    @pytest.mark.unit
    def test_completed_is_terminal(self):
        assert create_job_state_machine("completed").is_terminal

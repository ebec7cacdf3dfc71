"""Tests for the job status state machine."""

import pytest

from lotparser.core.errors import InvalidTransition
from lotparser.core.models import JobStatus
from lotparser.ingestion.status import TERMINAL_STATUSES, can_transition, check_transition, get_allowed_transitions


class TestJobStatusTransitions:
    """Test cases for allowed status changes."""

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (JobStatus.PENDING, JobStatus.PROCESSING),
            (JobStatus.PENDING, JobStatus.FAILED),
            (JobStatus.PROCESSING, JobStatus.COMPLETED),
            (JobStatus.PROCESSING, JobStatus.FAILED),
            (JobStatus.PROCESSING, JobStatus.DEAD),
            (JobStatus.FAILED, JobStatus.PENDING),
        ],
    )
    def test_allowed(self, from_status, to_status):
        assert can_transition(from_status, to_status)

    @pytest.mark.parametrize(
        "from_status,to_status",
        [
            (JobStatus.PENDING, JobStatus.COMPLETED),
            (JobStatus.COMPLETED, JobStatus.PENDING),
            (JobStatus.COMPLETED, JobStatus.PROCESSING),
            (JobStatus.DEAD, JobStatus.PENDING),
            (JobStatus.FAILED, JobStatus.PROCESSING),
        ],
    )
    def test_rejected(self, from_status, to_status):
        assert not can_transition(from_status, to_status)
        with pytest.raises(InvalidTransition):
            check_transition(from_status, to_status)

    def test_terminal_states_have_no_exits(self):
        assert get_allowed_transitions(JobStatus.COMPLETED) == []
        assert get_allowed_transitions(JobStatus.DEAD) == []
        for status in TERMINAL_STATUSES:
            assert get_allowed_transitions(status) == []

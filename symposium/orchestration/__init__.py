"""Orchestration layer - submission state machine, consensus and the workflow."""

from symposium.orchestration.state_machine import (
    Decision,
    StateMachine,
    Trigger,
    can_transition,
    valid_transitions,
)
from symposium.orchestration.consensus import ConsensusOutcome, evaluate_consensus, plan_transitions
from symposium.orchestration.eligibility import can_submit, submission_window_open
from symposium.orchestration.workflow import (
    ArtifactUpload,
    DeleteResult,
    EventSubmissionStats,
    SubmissionReviews,
    SubmissionWorkflow,
)

__all__ = [
    "Decision",
    "StateMachine",
    "Trigger",
    "can_transition",
    "valid_transitions",
    "ConsensusOutcome",
    "evaluate_consensus",
    "plan_transitions",
    "can_submit",
    "submission_window_open",
    "ArtifactUpload",
    "DeleteResult",
    "EventSubmissionStats",
    "SubmissionReviews",
    "SubmissionWorkflow",
]

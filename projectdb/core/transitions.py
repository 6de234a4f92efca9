"""
Status transition tables for every stateful record type.

Only listed pairs are legal; anything else, including a self transition, is
rejected. Some transitions name a precondition. The tag is checked by a
caller-supplied predicate at transition time, since deciding it needs
records from other collections.
"""

from dataclasses import dataclass
from typing import Dict, Optional, Tuple


@dataclass(frozen=True)
class Transition:
    from_status: str
    to_status: str
    precondition: Optional[str] = None


# Precondition tags
HARD_DEPENDENCIES_SATISFIED = "hard_dependencies_satisfied"
BLOCKERS_RESOLVED = "blockers_resolved"
VERIFICATIONS_PASSED = "verifications_passed"
COMPLETION_RECORD_WRITTEN = "completion_record_written"
REVIEW_RECORD_WRITTEN = "review_record_written"
ABANDONMENT_RECORD_WRITTEN = "abandonment_record_written"
RATIONALE_RECORDED = "rationale_recorded"
HUMAN_SIGN_OFF = "human_sign_off"


def _t(from_status: str, to_status: str, precondition: Optional[str] = None) -> Transition:
    return Transition(from_status, to_status, precondition)


TASK_TRANSITIONS: Tuple[Transition, ...] = (
    _t("pending", "active", HARD_DEPENDENCIES_SATISFIED),
    _t("pending", "blocked"),
    _t("pending", "needs_review"),
    _t("pending", "cancelled", RATIONALE_RECORDED),
    _t("active", "in_review"),
    _t("active", "blocked"),
    _t("active", "cancelled", RATIONALE_RECORDED),
    _t("blocked", "active", BLOCKERS_RESOLVED),
    _t("blocked", "cancelled", RATIONALE_RECORDED),
    _t("needs_review", "pending"),
    _t("in_review", "done", VERIFICATIONS_PASSED),
    _t("in_review", "active"),
)

GOAL_TRANSITIONS: Tuple[Transition, ...] = (
    _t("not_started", "in_progress"),
    _t("in_progress", "achieved", COMPLETION_RECORD_WRITTEN),
    _t("in_progress", "abandoned", ABANDONMENT_RECORD_WRITTEN),
    _t("not_started", "abandoned", ABANDONMENT_RECORD_WRITTEN),
)

MILESTONE_TRANSITIONS: Tuple[Transition, ...] = (
    _t("pending", "active"),
    _t("active", "reached", REVIEW_RECORD_WRITTEN),
    _t("active", "abandoned", ABANDONMENT_RECORD_WRITTEN),
    _t("pending", "abandoned", ABANDONMENT_RECORD_WRITTEN),
)

EPIC_TRANSITIONS: Tuple[Transition, ...] = (
    _t("pending", "active"),
    _t("active", "complete", COMPLETION_RECORD_WRITTEN),
    _t("active", "abandoned", ABANDONMENT_RECORD_WRITTEN),
    _t("pending", "abandoned", ABANDONMENT_RECORD_WRITTEN),
)

PATTERN_CONTRACT_TRANSITIONS: Tuple[Transition, ...] = (
    _t("draft", "established"),
    _t("established", "changed"),
    _t("changed", "established"),
    _t("established", "superseded"),
    _t("changed", "superseded"),
)

RISK_TRANSITIONS: Tuple[Transition, ...] = (
    _t("open", "mitigated"),
    _t("open", "realized"),
    _t("open", "accepted"),
    _t("mitigated", "realized"),
    _t("accepted", "realized"),
)

CHANGE_REQUEST_TRANSITIONS: Tuple[Transition, ...] = (
    _t("pending_review", "approved", HUMAN_SIGN_OFF),
    _t("pending_review", "rejected"),
)

SCOPE_CHANGE_TRANSITIONS: Tuple[Transition, ...] = (
    _t("pending", "applied", HUMAN_SIGN_OFF),
)

QUESTION_TRANSITIONS: Tuple[Transition, ...] = (
    _t("open", "resolved"),
    _t("open", "deferred"),
    _t("open", "dropped"),
    _t("deferred", "open"),
    _t("deferred", "dropped"),
)

DECISION_TRANSITIONS: Tuple[Transition, ...] = (
    _t("active", "superseded"),
    _t("active", "revisited"),
    _t("revisited", "active"),
    _t("revisited", "superseded"),
)

TRANSITIONS: Dict[str, Tuple[Transition, ...]] = {
    "task": TASK_TRANSITIONS,
    "goal": GOAL_TRANSITIONS,
    "milestone": MILESTONE_TRANSITIONS,
    "epic": EPIC_TRANSITIONS,
    "pattern_contract": PATTERN_CONTRACT_TRANSITIONS,
    "risk": RISK_TRANSITIONS,
    "change_request": CHANGE_REQUEST_TRANSITIONS,
    "scope_change": SCOPE_CHANGE_TRANSITIONS,
    "question": QUESTION_TRANSITIONS,
    "decision": DECISION_TRANSITIONS,
}

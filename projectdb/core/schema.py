"""
Record shapes for every entity in the project graph.

Each type is a frozen pydantic model: unknown fields are rejected, values are
checked strictly (no string to number coercion) and literal-enum fields only
accept their declared values. Optional fields default to None and are left
out of persisted output when never set.
"""

from typing import Any, Dict, Literal, Optional, Type

from pydantic import BaseModel, ConfigDict, model_validator


# Project-level enums
ProjectStatus = Literal["not_started", "in_progress", "complete", "on_hold", "abandoned"]
ProjectStage = Literal["uninitialised", "phase_1", "phase_2", "phase_3", "phase_4",
                       "complete", "abandoned", "on_hold"]
ProjectMode = Literal["normal", "change_management", "infeasibility_review", "phase_gate",
                      "awaiting_specialist"]

# Goal / milestone / epic / task
GoalStatus = Literal["not_started", "in_progress", "achieved", "abandoned"]
MilestoneStatus = Literal["pending", "active", "reached", "abandoned"]
EpicStatus = Literal["pending", "active", "complete", "abandoned"]
TaskStatus = Literal["pending", "active", "blocked", "needs_review", "in_review", "done", "cancelled"]
Priority = Literal["critical", "high", "medium", "low"]
DelegationLevel = Literal["implement", "plan", "research", "human", "specialist"]

# Resources
TechCategory = Literal["language", "runtime", "framework", "library", "database", "service", "tool"]
VerificationStatus = Literal["unverified", "verified", "stale"]
ResourceType = Literal["tech_stack", "shared_doc", "rule", "convention"]

# Blockers, dependencies, patterns
BlockerType = Literal["dependency", "decision", "external", "resource", "specialist_routing",
                      "verification_failure"]
DependencyNature = Literal["hard", "soft"]
PatternContractStatus = Literal["draft", "established", "changed", "superseded"]
PatternReviewStatus = Literal["current", "needs_review", "updated"]

# Verification and tracking
VerificationType = Literal["documentation", "research", "testing", "code_review", "external_validation"]
VerificationResult = Literal["passed", "failed", "partial", "pending"]
AttemptResult = Literal["passed", "failed", "partial"]
WorkIntervalTrigger = Literal["user_prompt", "agent_continuation", "command"]

# Knowledge and change management
DecisionStatus = Literal["active", "superseded", "revisited"]
QuestionStatus = Literal["open", "resolved", "deferred", "dropped"]
PhaseGateStatus = Literal["passed", "not_passed"]
RiskLikelihood = Literal["high", "medium", "low"]
RiskStatus = Literal["open", "mitigated", "realized", "accepted"]
ChangeRequestStatus = Literal["pending_review", "approved", "rejected"]
ScopeChangeStatus = Literal["pending", "applied"]
AbandonmentDisposition = Literal["retained", "discarded", "archived"]


class Record(BaseModel):
    """Base shape shared by every record type."""

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    id: str

    def to_storage(self) -> Dict[str, Any]:
        """JSON-ready dict of the fields that were actually set."""
        return self.model_dump(mode="json", exclude_unset=True)

    def fields_set(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class EmbeddableRecord(Record):
    """Record type indexed for semantic search."""

    embed_hash: Optional[str] = None
    embed_version: Optional[int] = None


def with_composite_id(data: Any, *key_fields: str) -> Any:
    """Fill in ``id`` from the key fields when the input does not carry one."""
    if isinstance(data, dict) and "id" not in data:
        parts = [data.get(name) for name in key_fields]
        if all(isinstance(p, str) for p in parts):
            data = {**data, "id": ":".join(parts)}
    return data


# Project

class Project(Record):
    name: str
    vision: str
    non_goals: str
    repository_map: str
    status: ProjectStatus
    stage: ProjectStage
    mode: ProjectMode


class ProjectCompletionRecord(Record):
    project_id: str
    completed_at: str
    confirmed_by: str
    goals_assessment: str
    milestones_review: str
    scope_delta: str
    total_active_seconds: float
    total_estimated_cost: float
    estimate_accuracy_notes: str
    key_decisions: str
    risks_summary: str
    learnings: str


# Goals

class Goal(Record):
    project_id: str
    statement: str
    status: GoalStatus


class GoalCompletionRecord(Record):
    goal_id: str
    achieved_at: str
    confirmed_by: str
    goal_statement_at_achievement: str
    evaluation_notes: str


class GoalEpicMap(Record):
    """Goal to epic join row. ``id`` defaults to ``goal_id:epic_id``."""

    goal_id: str
    epic_id: str

    @model_validator(mode="before")
    @classmethod
    def default_id(cls, data):
        return with_composite_id(data, "goal_id", "epic_id")


# Shared resources

class TechStackEntry(Record):
    project_id: str
    name: str
    category: TechCategory
    version: str
    purpose: str
    documentation_url: str
    project_specific_notes: str
    verification_status: VerificationStatus


class SharedDocRef(Record):
    project_id: str
    name: str
    url_or_path: str
    description: str
    scope: str


class Rule(Record):
    project_id: str
    statement: str
    rationale: str
    scope: str
    enforcement: str


class Convention(Record):
    project_id: str
    name: str
    description: str
    rationale: str
    applies_to: str


# Milestones

class Milestone(Record):
    project_id: str
    name: str
    description: str
    exit_criteria: str
    target_date: str
    status: MilestoneStatus


class MilestoneReviewRecord(Record):
    milestone_id: str
    reached_at: str
    confirmed_by: str
    exit_criteria_results: str
    epics_on_time_vs_slipped: str
    scope_delta: str
    actual_ai_cost: float
    key_decisions: str
    risks_realized: str
    notes: str


# Epics

class Epic(Record):
    project_id: str
    milestone_id: str
    name: str
    description: str
    scope_in: str
    scope_out: str
    acceptance_criteria: str
    status: EpicStatus
    is_infrastructure: bool
    constraint_or_resource_link: str
    notes_learnings: str


class EpicDependency(Record):
    requires_epic_id: str
    enables_epic_id: str
    nature: DependencyNature
    gate_condition: str


class EpicCompletionRecord(Record):
    epic_id: str
    completed_at: str
    confirmed_by: str
    acceptance_criteria_results: str
    scope_delta: str
    total_tasks_done: int
    total_tasks_cancelled: int
    total_active_seconds: float
    total_estimated_cost: float
    notes_learnings: str


# Tasks

class Task(EmbeddableRecord):
    epic_id: str
    name: str
    status: TaskStatus
    priority: Priority
    estimate: str
    delegation: DelegationLevel
    goal_statement: str
    context: str
    research_date: str
    acceptance_criteria: str
    affected_files: str
    notes: str


class Subtask(Record):
    task_id: str
    order_index: int
    description: str
    done: bool
    notes: str


class TaskAttachment(Record):
    task_id: str
    label: str
    url_or_path: str
    type: str


class TaskResourceRef(Record):
    """Task to shared resource join row. ``id`` defaults to ``task_id:resource_id:resource_type``."""

    task_id: str
    resource_id: str
    resource_type: ResourceType

    @model_validator(mode="before")
    @classmethod
    def default_id(cls, data):
        return with_composite_id(data, "task_id", "resource_id", "resource_type")


class Blocker(Record):
    task_id: str
    description: str
    type: BlockerType
    resolution_path: str
    blocking_task_id: Optional[str] = None
    resolved: bool
    resolved_at: Optional[str] = None


class TaskDependency(Record):
    task_id: str
    requires_task_id: str
    nature: DependencyNature


# Pattern contracts

class PatternContract(Record):
    establishing_task_id: str
    name: str
    current_version: int
    definition: str
    status: PatternContractStatus
    superseded_by_contract_id: Optional[str] = None


class PatternContractVersion(Record):
    contract_id: str
    version_number: int
    definition_at_version: str
    changed_at: str
    change_summary: str
    triggered_reviews_on: str


class PatternDependency(Record):
    task_id: str
    contract_id: str
    source_task_id: str
    pattern_name: str
    locked_version: int
    expectation: str
    review_status: PatternReviewStatus
    review_note: str


# Verification

class Verification(Record):
    task_id: str
    type: VerificationType
    source: str
    current_result: VerificationResult
    stale: bool


class VerificationAttempt(Record):
    verification_id: str
    attempt_number: int
    result: AttemptResult
    performed_by: str
    date: str
    notes: str


# Tracking

class WorkInterval(Record):
    task_id: str
    session_log_id: str
    started_at: str
    ended_at: str
    active_duration_seconds: float
    model: str
    provider: str
    tokens_in: int
    tokens_out: int
    estimated_cost: float
    trigger: WorkIntervalTrigger


class CompletionRecord(Record):
    task_id: str
    completed_at: str
    completed_by: str
    commit_reference: str
    elapsed_seconds: float
    total_active_seconds: float
    total_cost: float
    model_summary: str
    files_touched: str
    lines_added: int
    lines_removed: int
    net_lines: int
    characters_changed: int
    estimate_accuracy: str
    learnings: str
    review_outcome: str
    review_notes: str


# Sessions

class SessionLog(EmbeddableRecord):
    project_id: str
    entry_number: int
    timestamp: str
    author: str
    active_task_id: Optional[str] = None
    is_phase_completion_record: bool
    exact_state: str
    completed_this_session: str
    open_questions: str
    next_actions: str
    relevant_files: str
    git_branch: str
    git_last_commit: str
    git_uncommitted_changes: str
    pending_reviews: str


class PhaseCompletionRecord(Record):
    session_log_id: str
    phase_number: int
    phase_name: str
    completed_at: str
    output_checklist: str
    open_questions: str
    entry_condition_for_next: str
    gate_status: PhaseGateStatus
    gate_failures: str


# Knowledge

class Decision(EmbeddableRecord):
    project_id: str
    title: str
    date: str
    context: str
    decision: str
    rationale: str
    consequences: str
    affected_task_ids: str
    status: DecisionStatus
    superseded_by_id: Optional[str] = None


class Question(EmbeddableRecord):
    project_id: str
    description: str
    impact_entity_ids: str
    options: str
    owner: str
    status: QuestionStatus
    resolution: str
    resulting_decision_id: Optional[str] = None
    session_count: int
    escalation_flag: bool
    defer_until_condition: str


class Risk(EmbeddableRecord):
    project_id: str
    description: str
    likelihood: RiskLikelihood
    impact: str
    affected_entity_ids: str
    mitigation: str
    mitigation_task_id: Optional[str] = None
    status: RiskStatus
    owner: str
    identified_at_phase: str
    last_reviewed: str
    realization_notes: str


# Change management

class ChangeRequest(Record):
    project_id: str
    initiator: str
    target_entity_type: str
    target_entity_id: str
    previous_state: str
    proposed_state: str
    rationale: str
    impact_analysis: str
    required_phase_reruns: str
    status: ChangeRequestStatus
    human_sign_off: str
    rejection_rationale: str
    resulting_scope_change_id: Optional[str] = None


class ScopeChange(Record):
    change_request_id: str
    project_id: str
    target_entity_type: str
    target_entity_id: str
    previous_state: str
    new_state: str
    rationale: str
    triggered_by_type: str
    triggered_by_id: str
    downstream_impact: str
    required_actions_checklist: str
    human_sign_off: str
    status: ScopeChangeStatus


class AbandonmentRecord(Record):
    project_id: str
    entity_type: str
    entity_id: str
    abandoned_at: str
    rationale: str
    state_at_abandonment: str
    disposition: AbandonmentDisposition
    impact_on_goals: str
    human_sign_off: str


# Type name -> model, in declaration order
RECORD_TYPES: Dict[str, Type[Record]] = {
    "project": Project,
    "project_completion_record": ProjectCompletionRecord,
    "goal": Goal,
    "goal_completion_record": GoalCompletionRecord,
    "goal_epic_map": GoalEpicMap,
    "tech_stack_entry": TechStackEntry,
    "shared_doc_ref": SharedDocRef,
    "rule": Rule,
    "convention": Convention,
    "milestone": Milestone,
    "milestone_review_record": MilestoneReviewRecord,
    "epic": Epic,
    "epic_dependency": EpicDependency,
    "epic_completion_record": EpicCompletionRecord,
    "task": Task,
    "subtask": Subtask,
    "task_attachment": TaskAttachment,
    "task_resource_ref": TaskResourceRef,
    "blocker": Blocker,
    "task_dependency": TaskDependency,
    "pattern_contract": PatternContract,
    "pattern_contract_version": PatternContractVersion,
    "pattern_dependency": PatternDependency,
    "verification": Verification,
    "verification_attempt": VerificationAttempt,
    "work_interval": WorkInterval,
    "completion_record": CompletionRecord,
    "session_log": SessionLog,
    "phase_completion_record": PhaseCompletionRecord,
    "decision": Decision,
    "question": Question,
    "risk": Risk,
    "change_request": ChangeRequest,
    "scope_change": ScopeChange,
    "abandonment_record": AbandonmentRecord,
}

COLLECTION_NAMES: Dict[str, str] = {
    "project": "projects",
    "project_completion_record": "project_completion_records",
    "goal": "goals",
    "goal_completion_record": "goal_completion_records",
    "goal_epic_map": "goal_epic_maps",
    "tech_stack_entry": "tech_stack_entries",
    "shared_doc_ref": "shared_doc_refs",
    "rule": "rules",
    "convention": "conventions",
    "milestone": "milestones",
    "milestone_review_record": "milestone_review_records",
    "epic": "epics",
    "epic_dependency": "epic_dependencies",
    "epic_completion_record": "epic_completion_records",
    "task": "tasks",
    "subtask": "subtasks",
    "task_attachment": "task_attachments",
    "task_resource_ref": "task_resource_refs",
    "blocker": "blockers",
    "task_dependency": "task_dependencies",
    "pattern_contract": "pattern_contracts",
    "pattern_contract_version": "pattern_contract_versions",
    "pattern_dependency": "pattern_dependencies",
    "verification": "verifications",
    "verification_attempt": "verification_attempts",
    "work_interval": "work_intervals",
    "completion_record": "completion_records",
    "session_log": "session_logs",
    "phase_completion_record": "phase_completion_records",
    "decision": "decisions",
    "question": "questions",
    "risk": "risks",
    "change_request": "change_requests",
    "scope_change": "scope_changes",
    "abandonment_record": "abandonment_records",
}

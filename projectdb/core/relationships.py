"""
Foreign-key map for the project graph.

Relationships are descriptive: inserts never check them. ``validate_integrity``
walks this list on demand and reports every dangling reference.
"""

from dataclasses import dataclass
from typing import List, Literal

Cardinality = Literal["many-to-one", "one-to-one", "many-to-many"]


@dataclass(frozen=True)
class Relationship:
    """A declared reference from one record type's field to another type."""

    from_type: str
    from_field: str
    to_type: str
    to_field: str = "id"
    cardinality: Cardinality = "many-to-one"
    nullable: bool = False
    """When true a missing value is valid and not reported as an orphan"""


def _rel(from_type, from_field, to_type, cardinality="many-to-one", nullable=False):
    return Relationship(from_type, from_field, to_type, "id", cardinality, nullable)


RELATIONSHIPS: List[Relationship] = [
    # Project children
    _rel("goal", "project_id", "project"),
    _rel("tech_stack_entry", "project_id", "project"),
    _rel("shared_doc_ref", "project_id", "project"),
    _rel("rule", "project_id", "project"),
    _rel("convention", "project_id", "project"),
    _rel("milestone", "project_id", "project"),
    _rel("epic", "project_id", "project"),
    _rel("epic", "milestone_id", "milestone"),
    _rel("session_log", "project_id", "project"),
    _rel("decision", "project_id", "project"),
    _rel("question", "project_id", "project"),
    _rel("risk", "project_id", "project"),
    _rel("change_request", "project_id", "project"),
    _rel("scope_change", "project_id", "project"),
    _rel("abandonment_record", "project_id", "project"),

    # Completion records, at most one per parent
    _rel("project_completion_record", "project_id", "project", "one-to-one"),
    _rel("goal_completion_record", "goal_id", "goal", "one-to-one"),
    _rel("milestone_review_record", "milestone_id", "milestone", "one-to-one"),
    _rel("epic_completion_record", "epic_id", "epic", "one-to-one"),
    _rel("completion_record", "task_id", "task", "one-to-one"),

    # Goal <-> epic join
    _rel("goal_epic_map", "goal_id", "goal", "many-to-many"),
    _rel("goal_epic_map", "epic_id", "epic", "many-to-many"),

    # Epic dependencies
    _rel("epic_dependency", "requires_epic_id", "epic"),
    _rel("epic_dependency", "enables_epic_id", "epic"),

    _rel("task", "epic_id", "epic"),

    # Task children
    _rel("subtask", "task_id", "task"),
    _rel("task_attachment", "task_id", "task"),
    _rel("task_resource_ref", "task_id", "task"),
    _rel("blocker", "task_id", "task"),
    _rel("task_dependency", "task_id", "task"),
    _rel("task_dependency", "requires_task_id", "task"),
    _rel("pattern_contract", "establishing_task_id", "task"),
    _rel("pattern_dependency", "task_id", "task"),
    _rel("pattern_dependency", "contract_id", "pattern_contract"),
    _rel("pattern_contract_version", "contract_id", "pattern_contract"),
    _rel("verification", "task_id", "task"),
    _rel("verification_attempt", "verification_id", "verification"),
    _rel("work_interval", "task_id", "task"),
    _rel("work_interval", "session_log_id", "session_log"),

    _rel("phase_completion_record", "session_log_id", "session_log", "one-to-one"),

    # Change management
    _rel("scope_change", "change_request_id", "change_request", "one-to-one"),

    # Optional cross references
    _rel("session_log", "active_task_id", "task", nullable=True),
    _rel("decision", "superseded_by_id", "decision", nullable=True),
    _rel("question", "resulting_decision_id", "decision", nullable=True),
    _rel("risk", "mitigation_task_id", "task", nullable=True),
    _rel("change_request", "resulting_scope_change_id", "scope_change", nullable=True),
    _rel("blocker", "blocking_task_id", "task", nullable=True),
    _rel("pattern_contract", "superseded_by_contract_id", "pattern_contract", nullable=True),
]

"""
Concrete repositories with the finders callers use most.
"""

from typing import Dict, List, Optional, Type

from .repository import Repository
from .schema import Record


class ProjectRepository(Repository):
    type_name = "project"

    def get_current(self) -> Optional[Record]:
        """The first project on record; a data directory normally holds one."""
        records = self.get_all()
        return records[0] if records else None


class ProjectCompletionRecordRepository(Repository):
    type_name = "project_completion_record"

    def find_by_project(self, project_id: str) -> Optional[Record]:
        return self.find_one(lambda r: r.project_id == project_id)


class GoalRepository(Repository):
    type_name = "goal"

    def find_by_project(self, project_id: str) -> List[Record]:
        return self.find(lambda r: r.project_id == project_id)

    def find_by_status(self, status: str) -> List[Record]:
        return self.find(lambda r: r.status == status)


class GoalCompletionRecordRepository(Repository):
    type_name = "goal_completion_record"

    def find_by_goal(self, goal_id: str) -> Optional[Record]:
        return self.find_one(lambda r: r.goal_id == goal_id)


class GoalEpicMapRepository(Repository):
    type_name = "goal_epic_map"

    def find_by_goal(self, goal_id: str) -> List[Record]:
        return self.find(lambda r: r.goal_id == goal_id)

    def find_by_epic(self, epic_id: str) -> List[Record]:
        return self.find(lambda r: r.epic_id == epic_id)


class TechStackEntryRepository(Repository):
    type_name = "tech_stack_entry"

    def find_by_project(self, project_id: str) -> List[Record]:
        return self.find(lambda r: r.project_id == project_id)

    def find_by_category(self, category: str) -> List[Record]:
        return self.find(lambda r: r.category == category)


class SharedDocRefRepository(Repository):
    type_name = "shared_doc_ref"

    def find_by_project(self, project_id: str) -> List[Record]:
        return self.find(lambda r: r.project_id == project_id)


class RuleRepository(Repository):
    type_name = "rule"

    def find_by_project(self, project_id: str) -> List[Record]:
        return self.find(lambda r: r.project_id == project_id)


class ConventionRepository(Repository):
    type_name = "convention"

    def find_by_project(self, project_id: str) -> List[Record]:
        return self.find(lambda r: r.project_id == project_id)


class MilestoneRepository(Repository):
    type_name = "milestone"

    def find_by_project(self, project_id: str) -> List[Record]:
        return self.find(lambda r: r.project_id == project_id)

    def find_by_status(self, status: str) -> List[Record]:
        return self.find(lambda r: r.status == status)


class MilestoneReviewRecordRepository(Repository):
    type_name = "milestone_review_record"

    def find_by_milestone(self, milestone_id: str) -> Optional[Record]:
        return self.find_one(lambda r: r.milestone_id == milestone_id)


class EpicRepository(Repository):
    type_name = "epic"

    def find_by_milestone(self, milestone_id: str) -> List[Record]:
        return self.find(lambda r: r.milestone_id == milestone_id)

    def find_by_project(self, project_id: str) -> List[Record]:
        return self.find(lambda r: r.project_id == project_id)

    def find_by_status(self, status: str) -> List[Record]:
        return self.find(lambda r: r.status == status)


class EpicDependencyRepository(Repository):
    type_name = "epic_dependency"

    def find_requires(self, epic_id: str) -> List[Record]:
        """Dependencies that must be met before ``epic_id`` can start."""
        return self.find(lambda r: r.enables_epic_id == epic_id)

    def find_enables(self, epic_id: str) -> List[Record]:
        """Dependencies that ``epic_id`` unlocks."""
        return self.find(lambda r: r.requires_epic_id == epic_id)


class EpicCompletionRecordRepository(Repository):
    type_name = "epic_completion_record"

    def find_by_epic(self, epic_id: str) -> Optional[Record]:
        return self.find_one(lambda r: r.epic_id == epic_id)


class TaskRepository(Repository):
    type_name = "task"

    def find_by_epic(self, epic_id: str) -> List[Record]:
        return self.find(lambda r: r.epic_id == epic_id)

    def find_by_status(self, status: str) -> List[Record]:
        return self.find(lambda r: r.status == status)

    def find_active(self) -> List[Record]:
        return self.find_by_status("active")

    def find_blocked(self) -> List[Record]:
        return self.find_by_status("blocked")

    def find_by_priority(self, priority: str) -> List[Record]:
        return self.find(lambda r: r.priority == priority)


class SubtaskRepository(Repository):
    type_name = "subtask"

    def find_by_task(self, task_id: str) -> List[Record]:
        return self.find(lambda r: r.task_id == task_id)

    def find_ordered(self, task_id: str) -> List[Record]:
        return sorted(self.find_by_task(task_id), key=lambda r: r.order_index)


class TaskAttachmentRepository(Repository):
    type_name = "task_attachment"

    def find_by_task(self, task_id: str) -> List[Record]:
        return self.find(lambda r: r.task_id == task_id)


class TaskResourceRefRepository(Repository):
    type_name = "task_resource_ref"

    def find_by_task(self, task_id: str) -> List[Record]:
        return self.find(lambda r: r.task_id == task_id)

    def find_by_resource(self, resource_id: str) -> List[Record]:
        return self.find(lambda r: r.resource_id == resource_id)


class BlockerRepository(Repository):
    type_name = "blocker"

    def find_by_task(self, task_id: str) -> List[Record]:
        return self.find(lambda r: r.task_id == task_id)

    def find_unresolved(self) -> List[Record]:
        return self.find(lambda r: not r.resolved)

    def find_by_type(self, blocker_type: str) -> List[Record]:
        return self.find(lambda r: r.type == blocker_type)


class TaskDependencyRepository(Repository):
    type_name = "task_dependency"

    def find_dependencies_of(self, task_id: str) -> List[Record]:
        return self.find(lambda r: r.task_id == task_id)

    def find_dependants_of(self, task_id: str) -> List[Record]:
        return self.find(lambda r: r.requires_task_id == task_id)


class PatternContractRepository(Repository):
    type_name = "pattern_contract"

    def find_by_task(self, task_id: str) -> List[Record]:
        return self.find(lambda r: r.establishing_task_id == task_id)

    def find_by_status(self, status: str) -> List[Record]:
        return self.find(lambda r: r.status == status)


class PatternContractVersionRepository(Repository):
    type_name = "pattern_contract_version"

    def find_by_contract(self, contract_id: str) -> List[Record]:
        return self.find(lambda r: r.contract_id == contract_id)

    def find_latest(self, contract_id: str) -> Optional[Record]:
        versions = self.find_by_contract(contract_id)
        return max(versions, key=lambda r: r.version_number) if versions else None


class PatternDependencyRepository(Repository):
    type_name = "pattern_dependency"

    def find_by_task(self, task_id: str) -> List[Record]:
        return self.find(lambda r: r.task_id == task_id)

    def find_by_contract(self, contract_id: str) -> List[Record]:
        return self.find(lambda r: r.contract_id == contract_id)

    def find_needs_review(self) -> List[Record]:
        return self.find(lambda r: r.review_status == "needs_review")


class VerificationRepository(Repository):
    type_name = "verification"

    def find_by_task(self, task_id: str) -> List[Record]:
        return self.find(lambda r: r.task_id == task_id)

    def find_stale(self) -> List[Record]:
        return self.find(lambda r: r.stale)

    def find_by_result(self, result: str) -> List[Record]:
        return self.find(lambda r: r.current_result == result)


class VerificationAttemptRepository(Repository):
    type_name = "verification_attempt"

    def find_by_verification(self, verification_id: str) -> List[Record]:
        return self.find(lambda r: r.verification_id == verification_id)

    def find_latest(self, verification_id: str) -> Optional[Record]:
        attempts = self.find_by_verification(verification_id)
        return max(attempts, key=lambda r: r.attempt_number) if attempts else None


class WorkIntervalRepository(Repository):
    type_name = "work_interval"

    def find_by_task(self, task_id: str) -> List[Record]:
        return self.find(lambda r: r.task_id == task_id)

    def find_by_session(self, session_log_id: str) -> List[Record]:
        return self.find(lambda r: r.session_log_id == session_log_id)


class CompletionRecordRepository(Repository):
    type_name = "completion_record"

    def find_by_task(self, task_id: str) -> Optional[Record]:
        return self.find_one(lambda r: r.task_id == task_id)


class SessionLogRepository(Repository):
    type_name = "session_log"

    def find_by_project(self, project_id: str) -> List[Record]:
        return self.find(lambda r: r.project_id == project_id)

    def find_latest(self) -> Optional[Record]:
        records = self.get_all()
        return max(records, key=lambda r: r.entry_number) if records else None

    def find_by_entry_number(self, entry_number: int) -> Optional[Record]:
        return self.find_one(lambda r: r.entry_number == entry_number)


class PhaseCompletionRecordRepository(Repository):
    type_name = "phase_completion_record"

    def find_by_session(self, session_log_id: str) -> Optional[Record]:
        return self.find_one(lambda r: r.session_log_id == session_log_id)

    def find_by_phase(self, phase_number: int) -> List[Record]:
        return self.find(lambda r: r.phase_number == phase_number)

    def find_latest_passed(self) -> Optional[Record]:
        passed = self.find(lambda r: r.gate_status == "passed")
        return max(passed, key=lambda r: r.phase_number) if passed else None


class DecisionRepository(Repository):
    type_name = "decision"

    def find_by_project(self, project_id: str) -> List[Record]:
        return self.find(lambda r: r.project_id == project_id)

    def find_by_status(self, status: str) -> List[Record]:
        return self.find(lambda r: r.status == status)

    def find_active(self) -> List[Record]:
        return self.find_by_status("active")


class QuestionRepository(Repository):
    type_name = "question"

    def find_by_project(self, project_id: str) -> List[Record]:
        return self.find(lambda r: r.project_id == project_id)

    def find_open(self) -> List[Record]:
        return self.find(lambda r: r.status == "open")

    def find_escalated(self) -> List[Record]:
        return self.find(lambda r: r.escalation_flag)


class RiskRepository(Repository):
    type_name = "risk"

    def find_by_project(self, project_id: str) -> List[Record]:
        return self.find(lambda r: r.project_id == project_id)

    def find_by_status(self, status: str) -> List[Record]:
        return self.find(lambda r: r.status == status)

    def find_open(self) -> List[Record]:
        return self.find_by_status("open")


class ChangeRequestRepository(Repository):
    type_name = "change_request"

    def find_by_project(self, project_id: str) -> List[Record]:
        return self.find(lambda r: r.project_id == project_id)

    def find_pending(self) -> List[Record]:
        return self.find(lambda r: r.status == "pending_review")


class ScopeChangeRepository(Repository):
    type_name = "scope_change"

    def find_by_project(self, project_id: str) -> List[Record]:
        return self.find(lambda r: r.project_id == project_id)

    def find_by_change_request(self, change_request_id: str) -> Optional[Record]:
        return self.find_one(lambda r: r.change_request_id == change_request_id)


class AbandonmentRecordRepository(Repository):
    type_name = "abandonment_record"

    def find_by_project(self, project_id: str) -> List[Record]:
        return self.find(lambda r: r.project_id == project_id)

    def find_by_entity(self, entity_type: str, entity_id: str) -> Optional[Record]:
        return self.find_one(lambda r: r.entity_type == entity_type and r.entity_id == entity_id)


REPOSITORY_CLASSES: Dict[str, Type[Repository]] = {
    cls.type_name: cls
    for cls in (
        ProjectRepository, ProjectCompletionRecordRepository, GoalRepository,
        GoalCompletionRecordRepository, GoalEpicMapRepository, TechStackEntryRepository,
        SharedDocRefRepository, RuleRepository, ConventionRepository, MilestoneRepository,
        MilestoneReviewRecordRepository, EpicRepository, EpicDependencyRepository,
        EpicCompletionRecordRepository, TaskRepository, SubtaskRepository,
        TaskAttachmentRepository, TaskResourceRefRepository, BlockerRepository,
        TaskDependencyRepository, PatternContractRepository, PatternContractVersionRepository,
        PatternDependencyRepository, VerificationRepository, VerificationAttemptRepository,
        WorkIntervalRepository, CompletionRecordRepository, SessionLogRepository,
        PhaseCompletionRecordRepository, DecisionRepository, QuestionRepository,
        RiskRepository, ChangeRequestRepository, ScopeChangeRepository,
        AbandonmentRecordRepository,
    )
}


def repository_class_for(type_name: str) -> Type[Repository]:
    """Concrete repository class for a type, falling back to the generic one."""
    return REPOSITORY_CLASSES.get(type_name, Repository)

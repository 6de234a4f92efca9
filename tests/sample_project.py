"""
Builders for a small, referentially complete sample project.

Every builder returns a plain dict that validates as-is; keyword arguments
override individual fields.
"""


def project(**overrides):
    data = {
        "id": "proj-1",
        "name": "Orbit",
        "vision": "Track every launch window",
        "non_goals": "No billing",
        "repository_map": "src/ holds the service",
        "status": "in_progress",
        "stage": "phase_3",
        "mode": "normal",
    }
    data.update(overrides)
    return data


def goal(**overrides):
    data = {"id": "goal-1", "project_id": "proj-1", "statement": "Ship the scheduler", "status": "in_progress"}
    data.update(overrides)
    return data


def milestone(**overrides):
    data = {
        "id": "ms-1",
        "project_id": "proj-1",
        "name": "Alpha",
        "description": "First usable build",
        "exit_criteria": "Scheduler runs end to end",
        "target_date": "2026-12-01",
        "status": "active",
    }
    data.update(overrides)
    return data


def epic(**overrides):
    data = {
        "id": "epic-1",
        "project_id": "proj-1",
        "milestone_id": "ms-1",
        "name": "Authentication",
        "description": "Users can sign in",
        "scope_in": "Password login",
        "scope_out": "SSO",
        "acceptance_criteria": "Login works",
        "status": "active",
        "is_infrastructure": False,
        "constraint_or_resource_link": "",
        "notes_learnings": "",
    }
    data.update(overrides)
    return data


def task(**overrides):
    data = {
        "id": "task-1",
        "epic_id": "epic-1",
        "name": "Build login form",
        "status": "pending",
        "priority": "high",
        "estimate": "2h",
        "delegation": "implement",
        "goal_statement": "Users can enter credentials",
        "context": "Password authentication flow",
        "research_date": "2026-10-01",
        "acceptance_criteria": "Form submits and shows errors",
        "affected_files": "src/login.py",
        "notes": "",
    }
    data.update(overrides)
    return data


def subtask(**overrides):
    data = {
        "id": "sub-1",
        "task_id": "task-1",
        "order_index": 1,
        "description": "Lay out fields",
        "done": False,
        "notes": "",
    }
    data.update(overrides)
    return data


def blocker(**overrides):
    data = {
        "id": "blk-1",
        "task_id": "task-1",
        "description": "Waiting on API keys",
        "type": "external",
        "resolution_path": "Ask ops",
        "resolved": False,
    }
    data.update(overrides)
    return data


def task_dependency(**overrides):
    data = {"id": "dep-1", "task_id": "task-2", "requires_task_id": "task-1", "nature": "hard"}
    data.update(overrides)
    return data


def decision(**overrides):
    data = {
        "id": "dec-1",
        "project_id": "proj-1",
        "title": "Use JSONL storage",
        "date": "2026-10-02",
        "context": "Need diffable persistence",
        "decision": "One JSON object per line",
        "rationale": "Merges cleanly under version control",
        "consequences": "Whole-collection rewrites",
        "affected_task_ids": "",
        "status": "active",
    }
    data.update(overrides)
    return data


def risk(**overrides):
    data = {
        "id": "risk-1",
        "project_id": "proj-1",
        "description": "Embedding model download fails offline",
        "likelihood": "medium",
        "impact": "Search unavailable",
        "affected_entity_ids": "",
        "mitigation": "Fall back to the null provider",
        "status": "open",
        "owner": "dev",
        "identified_at_phase": "phase_2",
        "last_reviewed": "2026-10-03",
        "realization_notes": "",
    }
    data.update(overrides)
    return data


def question(**overrides):
    data = {
        "id": "q-1",
        "project_id": "proj-1",
        "description": "Should sessions expire?",
        "impact_entity_ids": "task-1",
        "options": "30 minutes or never",
        "owner": "dev",
        "status": "open",
        "resolution": "",
        "session_count": 1,
        "escalation_flag": False,
        "defer_until_condition": "",
    }
    data.update(overrides)
    return data


def session_log(**overrides):
    data = {
        "id": "log-1",
        "project_id": "proj-1",
        "entry_number": 1,
        "timestamp": "2026-10-04T10:00:00Z",
        "author": "dev",
        "is_phase_completion_record": False,
        "exact_state": "Login form half built",
        "completed_this_session": "Field layout",
        "open_questions": "",
        "next_actions": "Wire submit handler",
        "relevant_files": "src/login.py",
        "git_branch": "main",
        "git_last_commit": "abc123",
        "git_uncommitted_changes": "",
        "pending_reviews": "",
    }
    data.update(overrides)
    return data


def seed(db):
    """Insert a connected project graph through the Database's repositories."""
    db.projects.insert(project())
    db.goals.insert(goal())
    db.milestones.insert(milestone())
    db.epics.insert(epic())
    db.tasks.insert(task())
    db.tasks.insert(task(id="task-2", name="Add logout button", priority="low",
                         goal_statement="Users can end a session", context="Session teardown"))
    db.task_dependencies.insert(task_dependency())
    db.decisions.insert(decision())
    db.risks.insert(risk())
    db.questions.insert(question())
    db.session_logs.insert(session_log())

"""
Test cases for record shapes and the schema registry.
"""

import pytest

from projectdb.core.errors import UnknownTypeError, ValidationError
from projectdb.core.registry import SchemaRegistry
from projectdb.core.relationships import RELATIONSHIPS
from projectdb.core.schema import COLLECTION_NAMES, RECORD_TYPES, Task

import sample_project as sample


@pytest.fixture(scope="module")
def registry():
    return SchemaRegistry.default()


def test_default_registry_declares_every_type(registry):
    """The full registry covers all 35 record types with their collections."""
    assert len(registry.types()) == 35
    assert set(registry.types()) == set(RECORD_TYPES)
    assert registry.collection_for("task") == "tasks"
    assert registry.collection_for("tech_stack_entry") == "tech_stack_entries"
    assert registry.collection_for("epic_dependency") == "epic_dependencies"
    assert registry.type_for_collection("session_logs") == "session_log"
    assert registry.type_for_collection("nope") is None
    assert len(set(COLLECTION_NAMES.values())) == 35


def test_valid_record_passes(registry):
    result = registry.validate("task", sample.task())

    assert result.ok
    assert isinstance(result.record, Task)
    assert result.record.name == "Build login form"
    assert result.violations == []


def test_every_violation_is_reported(registry):
    """Two missing required fields produce at least two violations naming both."""
    data = sample.task()
    del data["name"]
    del data["priority"]

    result = registry.validate("task", data)

    assert not result.ok
    assert len(result.violations) >= 2
    fields = {v.field for v in result.violations}
    assert {"name", "priority"} <= fields
    assert all(v.kind == "missing" for v in result.violations if v.field in ("name", "priority"))


def test_enum_and_type_violations(registry):
    result = registry.validate("task", sample.task(status="finished", priority=3))

    assert not result.ok
    assert {"status", "priority"} <= {v.field for v in result.violations}


def test_strict_types_do_not_coerce(registry):
    """Numeric strings are not accepted for integer fields."""
    result = registry.validate("subtask", sample.subtask(order_index="1"))

    assert not result.ok
    assert [v.field for v in result.violations] == ["order_index"]


def test_unknown_fields_rejected(registry):
    result = registry.validate("goal", sample.goal(colour="blue"))

    assert not result.ok
    assert result.violations[0].field == "colour"


def test_validate_or_raise(registry):
    validator = registry.validator("goal")
    data = sample.goal()
    del data["statement"]

    with pytest.raises(ValidationError) as exc_info:
        validator.validate_or_raise(data)

    error = exc_info.value
    assert error.type_name == "goal"
    assert error.record_id == "goal-1"
    assert error.fields == ["statement"]
    assert error.to_dict()["violations"][0]["field"] == "statement"


def test_optional_fields_stay_unset_in_storage(registry):
    """Optional fields never set are not written back as null."""
    record = registry.validator("blocker").validate_or_raise(sample.blocker())

    stored = record.to_storage()
    assert "blocking_task_id" not in stored
    assert "resolved_at" not in stored
    assert record.blocking_task_id is None


def test_records_are_immutable(registry):
    record = registry.validator("goal").validate_or_raise(sample.goal())

    with pytest.raises(Exception):
        record.statement = "changed"


def test_embeddable_types_accept_embed_fields(registry):
    result = registry.validate("decision", sample.decision(embed_hash="1a2b3c4d", embed_version=1))
    assert result.ok

    result = registry.validate("goal", sample.goal(embed_hash="1a2b3c4d"))
    assert not result.ok


def test_join_types_default_to_composite_id(registry):
    goal_epic = registry.validator("goal_epic_map").validate_or_raise({"goal_id": "g1", "epic_id": "e1"})
    resource = registry.validator("task_resource_ref").validate_or_raise(
        {"task_id": "t1", "resource_id": "r1", "resource_type": "rule"}
    )
    explicit = registry.validator("goal_epic_map").validate_or_raise(
        {"id": "custom", "goal_id": "g1", "epic_id": "e1"}
    )

    assert goal_epic.id == "g1:e1"
    assert resource.id == "t1:r1:rule"
    assert explicit.id == "custom"


def test_unknown_type_raises(registry):
    with pytest.raises(UnknownTypeError) as exc_info:
        registry.validator("spaceship")

    assert exc_info.value.type_name == "spaceship"
    assert "spaceship" not in registry


def test_relationships(registry):
    task_edges = registry.relationships_for("task")
    dependency_edges = registry.relationships_for("task_dependency")

    assert [(r.from_field, r.to_type) for r in task_edges] == [("epic_id", "epic")]
    assert {r.from_field for r in dependency_edges} == {"task_id", "requires_task_id"}
    assert len(registry.relationships()) == len(RELATIONSHIPS) == 48
    nullable = {(r.from_type, r.from_field) for r in RELATIONSHIPS if r.nullable}
    assert ("session_log", "active_task_id") in nullable
    assert ("task", "epic_id") not in nullable


def test_every_relationship_points_at_declared_fields():
    for rel in RELATIONSHIPS:
        assert rel.from_type in RECORD_TYPES
        assert rel.to_type in RECORD_TYPES
        assert rel.from_field in RECORD_TYPES[rel.from_type].model_fields


def test_reduced_registry_defaults_collection_names():
    registry = SchemaRegistry({"task": Task})

    assert registry.types() == ["task"]
    assert registry.collection_for("task") == "tasks"
    assert registry.relationships() == []
    assert not registry.has_status_machine("task")

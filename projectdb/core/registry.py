"""
Schema registry: record shapes, collection names, relationships and
transition tables for a set of record types.

The registry is a plain constructed object handed to repositories. Tests
build reduced registries with only the types they exercise.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Type

from pydantic import ValidationError as PydanticValidationError

from .errors import UnknownTypeError, ValidationError, Violation
from .relationships import RELATIONSHIPS, Relationship
from .schema import COLLECTION_NAMES, RECORD_TYPES, Record
from .transitions import TRANSITIONS, Transition


@dataclass
class ValidationResult:
    """Outcome of validating one input against a record type."""

    ok: bool
    record: Optional[Record] = None
    violations: List[Violation] = field(default_factory=list)


def violations_from_pydantic(exc: PydanticValidationError) -> List[Violation]:
    """Flatten pydantic's error list into one Violation per failed constraint."""
    violations = []
    for error in exc.errors():
        loc = ".".join(str(part) for part in error.get("loc", ()))
        violations.append(Violation(
            field=loc or "<record>",
            message=error.get("msg", "invalid value"),
            kind=error.get("type", "invalid"),
        ))
    return violations


class RecordValidator:
    """Validates arbitrary input against one record type."""

    def __init__(self, type_name: str, model: Type[Record]):
        self.type_name = type_name
        self.model = model

    def validate(self, data: Any) -> ValidationResult:
        try:
            record = self.model.model_validate(data)
        except PydanticValidationError as exc:
            return ValidationResult(ok=False, violations=violations_from_pydantic(exc))
        return ValidationResult(ok=True, record=record)

    def validate_or_raise(self, data: Any) -> Record:
        """Return the typed record or raise ValidationError listing every violation."""
        result = self.validate(data)
        if not result.ok:
            record_id = data.get("id") if isinstance(data, dict) else None
            raise ValidationError(self.type_name, result.violations,
                                  record_id=record_id if isinstance(record_id, str) else None)
        return result.record


class SchemaRegistry:
    """Lookup table for record types. Pure, no I/O."""

    def __init__(self,
                 record_types: Mapping[str, Type[Record]],
                 collection_names: Optional[Mapping[str, str]] = None,
                 relationships: Iterable[Relationship] = (),
                 transitions: Optional[Mapping[str, Sequence[Transition]]] = None):
        self._models: Dict[str, Type[Record]] = dict(record_types)
        collection_names = collection_names or {}
        self._collections: Dict[str, str] = {
            name: collection_names.get(name, f"{name}s") for name in self._models
        }
        self._types_by_collection = {c: t for t, c in self._collections.items()}
        self._relationships: List[Relationship] = list(relationships)
        self._transitions: Dict[str, Tuple[Transition, ...]] = {
            name: tuple(rules) for name, rules in (transitions or {}).items()
        }
        self._validators: Dict[str, RecordValidator] = {
            name: RecordValidator(name, model) for name, model in self._models.items()
        }

    @classmethod
    def default(cls) -> "SchemaRegistry":
        """Registry covering the full project graph."""
        return cls(RECORD_TYPES, COLLECTION_NAMES, RELATIONSHIPS, TRANSITIONS)

    def types(self) -> List[str]:
        return list(self._models)

    def __contains__(self, type_name: str) -> bool:
        return type_name in self._models

    def model(self, type_name: str) -> Type[Record]:
        self._require(type_name)
        return self._models[type_name]

    def collection_for(self, type_name: str) -> str:
        self._require(type_name)
        return self._collections[type_name]

    def type_for_collection(self, collection: str) -> Optional[str]:
        return self._types_by_collection.get(collection)

    def validator(self, type_name: str) -> RecordValidator:
        self._require(type_name)
        return self._validators[type_name]

    def validate(self, type_name: str, data: Any) -> ValidationResult:
        return self.validator(type_name).validate(data)

    def relationships(self) -> List[Relationship]:
        return list(self._relationships)

    def relationships_for(self, type_name: str) -> List[Relationship]:
        """Outgoing foreign keys declared on a type."""
        self._require(type_name)
        return [r for r in self._relationships if r.from_type == type_name]

    def transitions_for(self, type_name: str) -> Tuple[Transition, ...]:
        self._require(type_name)
        return self._transitions.get(type_name, ())

    def has_status_machine(self, type_name: str) -> bool:
        return bool(self._transitions.get(type_name))

    def find_transition(self, type_name: str, from_status: str, to_status: str) -> Optional[Transition]:
        for rule in self._transitions.get(type_name, ()):
            if rule.from_status == from_status and rule.to_status == to_status:
                return rule
        return None

    def is_valid_transition(self, type_name: str, from_status: str, to_status: str) -> bool:
        return self.find_transition(type_name, from_status, to_status) is not None

    def _require(self, type_name: str):
        if type_name not in self._models:
            raise UnknownTypeError(type_name)

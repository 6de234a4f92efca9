"""
Error types raised by the data layer.

Every error carries the structured detail a caller needs to render its own
message (type name, record id, field, transition pair) plus a ``to_dict()``
form for serialization.
"""

from dataclasses import dataclass, asdict
from typing import Any, Dict, List, Optional, Sequence


@dataclass(frozen=True)
class Violation:
    """A single failed constraint on a record."""

    field: str
    """Dotted path of the offending field, '<record>' for the record as a whole"""

    message: str
    """Human readable reason"""

    kind: str = "invalid"
    """Machine readable category (missing, extra_forbidden, literal_error, ...)"""


class ProjectDBError(Exception):
    """Base class for every error raised by projectdb."""

    def to_dict(self) -> Dict[str, Any]:
        return {"error_type": type(self).__name__, "message": str(self)}


class ValidationError(ProjectDBError):
    """Input does not match a type's declared shape. Lists every violation."""

    def __init__(self, type_name: str, violations: Sequence[Violation], record_id: Optional[str] = None):
        self.type_name = type_name
        self.violations: List[Violation] = list(violations)
        self.record_id = record_id
        summary = "; ".join(f"{v.field}: {v.message}" for v in self.violations)
        target = f"{type_name}/{record_id}" if record_id else type_name
        super().__init__(f"Validation failed for {target}: {summary}")

    @property
    def fields(self) -> List[str]:
        return [v.field for v in self.violations]

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "type": self.type_name,
            "record_id": self.record_id,
            "violations": [asdict(v) for v in self.violations],
        })
        return data


class NotFoundError(ProjectDBError):
    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"Record not found: {collection}/{record_id}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"collection": self.collection, "record_id": self.record_id})
        return data


class DuplicateIdError(ProjectDBError):
    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"Duplicate id: {collection}/{record_id}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"collection": self.collection, "record_id": self.record_id})
        return data


class IllegalTransitionError(ProjectDBError):
    """Status change not present in the type's transition table."""

    def __init__(self, type_name: str, record_id: str, from_status: str, to_status: str,
                 message: Optional[str] = None):
        self.type_name = type_name
        self.record_id = record_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(message or f"Illegal transition: {type_name}/{record_id} {from_status} -> {to_status}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "type": self.type_name,
            "record_id": self.record_id,
            "from_status": self.from_status,
            "to_status": self.to_status,
        })
        return data


class PreconditionFailedError(IllegalTransitionError):
    """Transition is in the table but its named precondition does not hold."""

    def __init__(self, type_name: str, record_id: str, from_status: str, to_status: str, precondition: str):
        self.precondition = precondition
        super().__init__(
            type_name, record_id, from_status, to_status,
            message=(f"Precondition '{precondition}' not met for {type_name}/{record_id} "
                     f"{from_status} -> {to_status}"),
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["precondition"] = self.precondition
        return data


class UnknownTypeError(ProjectDBError):
    def __init__(self, type_name: str):
        self.type_name = type_name
        super().__init__(f"Unknown record type: {type_name}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["type"] = self.type_name
        return data


class StorageError(ProjectDBError):
    """I/O failure while loading or saving a collection."""

    def __init__(self, collection: str, operation: str, reason: str):
        self.collection = collection
        self.operation = operation
        self.reason = reason
        super().__init__(f"Storage {operation} failed for {collection}: {reason}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"collection": self.collection, "operation": self.operation, "reason": self.reason})
        return data


class MalformedDataError(ProjectDBError):
    """A persisted line failed to parse, or a loaded record failed validation."""

    def __init__(self, collection: str, reason: str, line_number: Optional[int] = None,
                 record_id: Optional[str] = None, violations: Sequence[Violation] = ()):
        self.collection = collection
        self.reason = reason
        self.line_number = line_number
        self.record_id = record_id
        self.violations: List[Violation] = list(violations)
        location = collection
        if line_number is not None:
            location += f" line {line_number}"
        if record_id is not None:
            location += f" (id={record_id})"
        super().__init__(f"Malformed data in {location}: {reason}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "collection": self.collection,
            "reason": self.reason,
            "line_number": self.line_number,
            "record_id": self.record_id,
            "violations": [asdict(v) for v in self.violations],
        })
        return data


class DatabaseError(ProjectDBError):
    """Lifecycle misuse or invalid configuration of the Database facade."""

"""
Generic repository: one collection, validated CRUD, transition checks and
mutation events.

Write path for every mutation:
    validate -> update in-memory index -> save whole collection -> emit event
A failed save restores the index to its previous state and no event fires.
The in-memory index is owned by the repository; nothing else mutates it.
"""

from dataclasses import asdict
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional

from .errors import (
    DuplicateIdError,
    IllegalTransitionError,
    MalformedDataError,
    NotFoundError,
    PreconditionFailedError,
    StorageError,
    ValidationError,
    Violation,
)
from .events import Deleted, EventBus, Inserted, Updated
from .query import Query
from .registry import SchemaRegistry
from .schema import Record
from .storage import StorageAdapter
from ..util.logging import logger

# (precondition tag, current record) -> whether the precondition holds
PreconditionCheck = Callable[[str, Record], bool]


class Repository:
    """Typed access to a single collection backed by a StorageAdapter."""

    type_name: Optional[str] = None

    def __init__(self, registry: SchemaRegistry, storage: StorageAdapter, events: EventBus,
                 type_name: Optional[str] = None):
        self.type_name = type_name or self.type_name
        if not self.type_name:
            raise ValueError("Repository needs a record type name")
        self.registry = registry
        self.collection = registry.collection_for(self.type_name)
        self.validator = registry.validator(self.type_name)
        self.storage = storage
        self.events = events
        self._records: Dict[str, Record] = {}
        self.loaded = False

    def load(self) -> int:
        """Read and validate the whole collection, replacing the index.

        Fails on the first invalid or duplicate record; the existing index is
        left untouched in that case.

        Returns:
            Number of records loaded
        """
        raw = self.storage.load_collection(self.collection)
        records: Dict[str, Record] = {}
        for position, item in enumerate(raw, start=1):
            result = self.validator.validate(item)
            if not result.ok:
                record_id = item.get("id") if isinstance(item, dict) else None
                logger.log_schema_validation_error(
                    "load", [asdict(v) for v in result.violations],
                    type_name=self.type_name, record_id=record_id if isinstance(record_id, str) else None,
                )
                raise MalformedDataError(
                    self.collection, f"record #{position} failed validation",
                    record_id=record_id if isinstance(record_id, str) else None,
                    violations=result.violations,
                )
            record = result.record
            if record.id in records:
                raise MalformedDataError(self.collection, f"record #{position} repeats id",
                                         record_id=record.id)
            records[record.id] = record

        self._records = records
        self.loaded = True
        return len(records)

    # Reads

    def get_by_id(self, record_id: str) -> Optional[Record]:
        return self._records.get(record_id)

    def get_by_id_or_raise(self, record_id: str) -> Record:
        record = self._records.get(record_id)
        if record is None:
            raise NotFoundError(self.collection, record_id)
        return record

    def get_all(self) -> List[Record]:
        return list(self._records.values())

    def find(self, predicate: Callable[[Record], bool]) -> List[Record]:
        return [r for r in self._records.values() if predicate(r)]

    def find_one(self, predicate: Callable[[Record], bool]) -> Optional[Record]:
        for record in self._records.values():
            if predicate(record):
                return record
        return None

    def count(self, predicate: Optional[Callable[[Record], bool]] = None) -> int:
        if predicate is None:
            return len(self._records)
        return len(self.find(predicate))

    def exists(self, record_id: str) -> bool:
        return record_id in self._records

    def query(self) -> Query:
        return Query(self.get_all)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[Record]:
        return iter(self.get_all())

    # Writes

    def insert(self, data: Any) -> Record:
        self._require_loaded()
        record = self._validate(data, "insert")
        if record.id in self._records:
            logger.log_record_operation("insert", self.collection, record.id, status="duplicate")
            raise DuplicateIdError(self.collection, record.id)

        snapshot = dict(self._records)
        self._records[record.id] = record
        self._persist(snapshot, "insert", record.id)

        logger.log_record_operation("insert", self.collection, record.id)
        self.events.emit(Inserted(self.collection, record.id, record))
        return record

    def update(self, record_id: str, patch: Mapping[str, Any]) -> Record:
        """Merge ``patch`` onto the current record and re-validate the result.

        A changed ``status`` on a type with a transition table must be a legal
        transition; use ``transition`` when the move has a precondition.
        """
        self._require_loaded()
        existing = self.get_by_id_or_raise(record_id)
        if "id" in patch and patch["id"] != record_id:
            raise ValidationError(self.type_name, [Violation("id", "id cannot be changed", "immutable")],
                                  record_id=record_id)

        new_status = patch.get("status")
        if (new_status is not None and self.registry.has_status_machine(self.type_name)
                and new_status != getattr(existing, "status", None)):
            self._require_transition(existing, new_status)

        return self._apply_update(existing, patch, "update")

    def transition(self, record_id: str, new_status: str,
                   precondition_check: Optional[PreconditionCheck] = None) -> Record:
        """Move a record to ``new_status`` if the transition table allows it.

        Args:
            record_id: Record to transition
            new_status: Target status
            precondition_check: Optional predicate evaluating the rule's
                precondition tag against the current record

        Returns:
            The updated record
        """
        self._require_loaded()
        existing = self.get_by_id_or_raise(record_id)
        rule = self._require_transition(existing, new_status)

        if rule.precondition and precondition_check is not None:
            if not precondition_check(rule.precondition, existing):
                logger.log_record_operation(
                    "transition", self.collection, record_id, status="precondition_failed",
                    details={"from": rule.from_status, "to": new_status, "precondition": rule.precondition},
                )
                raise PreconditionFailedError(self.type_name, record_id, rule.from_status, new_status,
                                              rule.precondition)

        return self._apply_update(existing, {"status": new_status}, "transition")

    def delete(self, record_id: str) -> Record:
        self._require_loaded()
        existing = self.get_by_id_or_raise(record_id)

        snapshot = dict(self._records)
        del self._records[record_id]
        self._persist(snapshot, "delete", record_id)

        logger.log_record_operation("delete", self.collection, record_id)
        self.events.emit(Deleted(self.collection, record_id, existing))
        return existing

    # Internals

    def _require_loaded(self):
        # Saving an unloaded collection would overwrite what is on disk
        if not self.loaded:
            raise RuntimeError(f"Repository '{self.collection}' must be loaded before it is modified")

    def _validate(self, data: Any, operation: str) -> Record:
        try:
            return self.validator.validate_or_raise(data)
        except ValidationError as e:
            logger.log_schema_validation_error(
                operation, [asdict(v) for v in e.violations],
                type_name=self.type_name, record_id=e.record_id,
            )
            raise

    def _require_transition(self, existing: Record, new_status: str):
        current = getattr(existing, "status", None)
        rule = self.registry.find_transition(self.type_name, current, new_status)
        if rule is None:
            logger.log_record_operation(
                "transition", self.collection, existing.id, status="illegal",
                details={"from": current, "to": new_status},
            )
            raise IllegalTransitionError(self.type_name, existing.id, str(current), new_status)
        return rule

    def _apply_update(self, existing: Record, patch: Mapping[str, Any], operation: str) -> Record:
        merged = {**existing.fields_set(), **patch}
        record = self._validate(merged, operation)

        snapshot = dict(self._records)
        self._records[existing.id] = record
        self._persist(snapshot, operation, existing.id)

        details = None
        if operation == "transition":
            details = {"from": getattr(existing, "status", None), "to": getattr(record, "status", None)}
        logger.log_record_operation(operation, self.collection, existing.id, details=details)
        self.events.emit(Updated(self.collection, existing.id, existing, record))
        return record

    def _persist(self, snapshot: Dict[str, Record], operation: str, record_id: str):
        """Save the whole collection, restoring ``snapshot`` if the save fails."""
        rows = [r.to_storage() for r in self._records.values()]
        try:
            self.storage.save_collection(self.collection, rows)
        except StorageError:
            self._records = snapshot
            logger.log_record_operation(operation, self.collection, record_id, status="rolled_back")
            raise
        except Exception as e:
            # Any adapter failure restores the index
            self._records = snapshot
            logger.log_record_operation(operation, self.collection, record_id, status="rolled_back")
            raise StorageError(self.collection, "save", str(e)) from e

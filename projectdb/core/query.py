"""
Composable, immutable queries over a record source.

Every builder call returns a new Query; nothing is evaluated until a terminal
call (execute, first, count, exists, group_by, sum). Evaluation order is
filters -> stable sort -> offset -> limit -> projection.

Records are read by attribute or by key, so the same query works over
pydantic records and plain dicts.
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

Predicate = Callable[[Any], bool]
SortKey = Tuple[str, str]  # (field, "asc" | "desc")


def get_field(record: Any, field: str) -> Any:
    """Read a field from a record or mapping; missing fields read as None."""
    if isinstance(record, Mapping):
        return record.get(field)
    return getattr(record, field, None)


def _sort_value(value: Any):
    if isinstance(value, (int, float)):
        return (0, value)
    return (1, str(value))


def _sort_records(records: List[Any], keys: Sequence[SortKey]) -> List[Any]:
    # Successive stable sorts, least significant key first
    result = list(records)
    for field, direction in reversed(keys):
        present = [r for r in result if get_field(r, field) is not None]
        absent = [r for r in result if get_field(r, field) is None]
        present.sort(key=lambda r: _sort_value(get_field(r, field)), reverse=(direction == "desc"))
        result = present + absent
    return result


@dataclass(frozen=True)
class _QueryState:
    filters: Tuple[Predicate, ...] = ()
    sort_keys: Tuple[SortKey, ...] = ()
    limit: Optional[int] = None
    offset: Optional[int] = None
    fields: Optional[Tuple[str, ...]] = None


class Query:
    """Lazy query description bound to a record source."""

    def __init__(self, source: Union[Callable[[], Iterable[Any]], Iterable[Any]],
                 _state: Optional[_QueryState] = None):
        if callable(source):
            self._source = source
        else:
            items = list(source)
            self._source = lambda: items
        self._state = _state or _QueryState()

    def _with(self, **changes) -> "Query":
        return Query(self._source, replace(self._state, **changes))

    # Filters

    def where(self, predicate: Predicate) -> "Query":
        return self._with(filters=self._state.filters + (predicate,))

    def where_eq(self, field: str, value: Any) -> "Query":
        return self.where(lambda r: get_field(r, field) == value)

    def where_ne(self, field: str, value: Any) -> "Query":
        return self.where(lambda r: get_field(r, field) != value)

    def where_in(self, field: str, values: Iterable[Any]) -> "Query":
        allowed = list(values)
        return self.where(lambda r: get_field(r, field) in allowed)

    def where_contains(self, field: str, substring: str) -> "Query":
        def contains(record):
            value = get_field(record, field)
            if value is None:
                return False
            if isinstance(value, (list, tuple)):
                return any(substring in str(item) for item in value)
            return substring in (value if isinstance(value, str) else str(value))
        return self.where(contains)

    def where_gt(self, field: str, value: Any) -> "Query":
        def gt(record):
            current = get_field(record, field)
            return current is not None and current > value
        return self.where(gt)

    def where_lt(self, field: str, value: Any) -> "Query":
        def lt(record):
            current = get_field(record, field)
            return current is not None and current < value
        return self.where(lt)

    # Ordering and paging

    def sort_by(self, field: str, descending: bool = False) -> "Query":
        return self._with(sort_keys=((field, "desc" if descending else "asc"),))

    def sort_by_multiple(self, keys: Sequence[SortKey]) -> "Query":
        for _, direction in keys:
            if direction not in ("asc", "desc"):
                raise ValueError(f"Sort direction must be 'asc' or 'desc', got {direction!r}")
        return self._with(sort_keys=tuple(keys))

    def limit(self, n: int) -> "Query":
        if n < 0:
            raise ValueError("limit must be >= 0")
        return self._with(limit=n)

    def offset(self, n: int) -> "Query":
        if n < 0:
            raise ValueError("offset must be >= 0")
        return self._with(offset=n)

    def select(self, *fields: str) -> "Query":
        return self._with(fields=tuple(fields))

    # Terminals

    def _filtered(self) -> List[Any]:
        results = list(self._source())
        for predicate in self._state.filters:
            results = [r for r in results if predicate(r)]
        return results

    def execute(self) -> List[Any]:
        state = self._state
        results = self._filtered()
        if state.sort_keys:
            results = _sort_records(results, state.sort_keys)
        if state.offset:
            results = results[state.offset:]
        if state.limit is not None:
            results = results[:state.limit]
        if state.fields is not None:
            results = [{f: get_field(r, f) for f in state.fields} for r in results]
        return results

    def first(self) -> Optional[Any]:
        results = self.limit(1).execute()
        return results[0] if results else None

    def count(self) -> int:
        """Number of records matching the filters; paging and projection are ignored."""
        return len(self._filtered())

    def exists(self) -> bool:
        return self.count() > 0

    def group_by(self, field: str) -> Dict[Any, List[Any]]:
        groups: Dict[Any, List[Any]] = {}
        for record in self.execute():
            groups.setdefault(get_field(record, field), []).append(record)
        return groups

    def sum(self, field: str) -> float:
        total = 0
        for record in self.execute():
            value = get_field(record, field)
            if isinstance(value, (int, float)) and not isinstance(value, bool):
                total += value
        return total

"""
Mutation events and the bus that dispatches them.

Repositories emit an event only after the collection has been saved. The bus
is owned by the Database and passed to each repository explicitly.
"""

from dataclasses import dataclass
from typing import Callable, ClassVar, Dict, List, Optional, Union

from .schema import Record
from ..util.logging import logger

INSERTED = "inserted"
UPDATED = "updated"
DELETED = "deleted"
EVENT_KINDS = (INSERTED, UPDATED, DELETED)


@dataclass(frozen=True)
class Inserted:
    collection: str
    id: str
    current: Record
    kind: ClassVar[str] = INSERTED

    @property
    def previous(self) -> Optional[Record]:
        return None


@dataclass(frozen=True)
class Updated:
    collection: str
    id: str
    previous: Record
    current: Record
    kind: ClassVar[str] = UPDATED


@dataclass(frozen=True)
class Deleted:
    collection: str
    id: str
    previous: Record
    kind: ClassVar[str] = DELETED

    @property
    def current(self) -> Optional[Record]:
        return None


MutationEvent = Union[Inserted, Updated, Deleted]
MutationListener = Callable[[MutationEvent], None]


class EventBus:
    """Synchronous pub/sub for mutation events.

    Listeners run in registration order. A listener that raises is logged and
    skipped; the mutation it reacts to has already been persisted.
    """

    def __init__(self):
        self._listeners: Dict[str, List[MutationListener]] = {kind: [] for kind in EVENT_KINDS}

    def on(self, kind: str, listener: MutationListener) -> None:
        if kind not in self._listeners:
            raise ValueError(f"Unknown event kind: {kind}")
        self._listeners[kind].append(listener)

    def off(self, kind: str, listener: MutationListener) -> None:
        listeners = self._listeners.get(kind, [])
        if listener in listeners:
            listeners.remove(listener)

    def on_any(self, listener: MutationListener) -> None:
        for kind in EVENT_KINDS:
            self.on(kind, listener)

    def off_any(self, listener: MutationListener) -> None:
        for kind in EVENT_KINDS:
            self.off(kind, listener)

    def listener_count(self, kind: Optional[str] = None) -> int:
        if kind is not None:
            return len(self._listeners.get(kind, []))
        return sum(len(listeners) for listeners in self._listeners.values())

    def emit(self, event: MutationEvent) -> None:
        for listener in list(self._listeners.get(event.kind, [])):
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    f"Event listener failed for {event.kind} {event.collection}/{event.id}: {e}",
                    exc_info=True,
                )

    def clear(self) -> None:
        for listeners in self._listeners.values():
            listeners.clear()

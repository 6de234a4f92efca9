"""
Storage adapters: whole-collection load and save.

JsonlStorageAdapter keeps one ``<collection>.jsonl`` file per collection, one
JSON object per line. Saves go to a sibling temp file which is fsynced and
then moved over the target with ``os.replace``, so a reader only ever sees
the old complete file or the new complete file.
"""

import copy
import json
import os
import re
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Union

from .errors import MalformedDataError, StorageError
from ..util.logging import logger

COLLECTION_SUFFIX = ".jsonl"
TEMP_SUFFIX = ".tmp"
_VALID_NAME = re.compile(r"^[A-Za-z0-9_-]+$")


class StorageAdapter(ABC):
    """Abstract interface for collection persistence."""

    @abstractmethod
    def load_collection(self, name: str) -> List[Dict[str, Any]]:
        """Return every stored record of a collection. Missing collection -> []."""
        pass

    @abstractmethod
    def save_collection(self, name: str, records: List[Dict[str, Any]]) -> None:
        """Replace the stored collection with ``records``."""
        pass

    @abstractmethod
    def has_collection(self, name: str) -> bool:
        pass

    @abstractmethod
    def list_collections(self) -> List[str]:
        pass

    @abstractmethod
    def delete_collection(self, name: str) -> None:
        """Remove a collection. Deleting a missing collection is a no-op."""
        pass


def _check_name(name: str):
    if not _VALID_NAME.match(name or ""):
        raise ValueError(f"Invalid collection name: {name!r}")


class JsonlStorageAdapter(StorageAdapter):
    """Durable adapter writing one JSONL file per collection."""

    def __init__(self, base_dir: Union[str, Path]):
        self.base_dir = Path(base_dir)

    def file_path(self, name: str) -> Path:
        _check_name(name)
        return self.base_dir / f"{name}{COLLECTION_SUFFIX}"

    def load_collection(self, name: str) -> List[Dict[str, Any]]:
        path = self.file_path(name)
        try:
            with open(path, "r", encoding="utf-8") as f:
                lines = f.read().split("\n")
        except FileNotFoundError:
            return []
        except OSError as e:
            logger.log_collection_io("load", name, 0, status="failed", details={"error": str(e)})
            raise StorageError(name, "load", str(e)) from e

        records = []
        for line_number, line in enumerate(lines, start=1):
            if not line.strip():
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                raise MalformedDataError(name, f"invalid JSON: {e.msg}", line_number=line_number) from e
            if not isinstance(record, dict):
                raise MalformedDataError(name, "line is not a JSON object", line_number=line_number)
            records.append(record)

        logger.log_collection_io("load", name, len(records))
        return records

    def save_collection(self, name: str, records: List[Dict[str, Any]]) -> None:
        path = self.file_path(name)
        tmp_path = path.with_name(path.name + TEMP_SUFFIX)
        try:
            # One record per line; json.dumps escapes embedded newlines
            content = "".join(json.dumps(r, ensure_ascii=False) + "\n" for r in records)
            self.base_dir.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            self._discard(tmp_path)
            logger.log_collection_io("save", name, len(records), status="failed", details={"error": str(e)})
            raise StorageError(name, "save", str(e)) from e

        logger.log_collection_io("save", name, len(records))

    def has_collection(self, name: str) -> bool:
        return self.file_path(name).is_file()

    def list_collections(self) -> List[str]:
        if not self.base_dir.is_dir():
            return []
        return sorted(
            p.name[:-len(COLLECTION_SUFFIX)]
            for p in self.base_dir.iterdir()
            if p.is_file() and p.name.endswith(COLLECTION_SUFFIX)
        )

    def delete_collection(self, name: str) -> None:
        path = self.file_path(name)
        try:
            path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageError(name, "delete", str(e)) from e

    @staticmethod
    def _discard(tmp_path: Path):
        try:
            tmp_path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove temp file {tmp_path}: {e}")


class MemoryStorageAdapter(StorageAdapter):
    """In-memory adapter with copy-in/copy-out semantics, used for tests."""

    def __init__(self):
        self._collections: Dict[str, List[Dict[str, Any]]] = {}

    def load_collection(self, name: str) -> List[Dict[str, Any]]:
        _check_name(name)
        return copy.deepcopy(self._collections.get(name, []))

    def save_collection(self, name: str, records: List[Dict[str, Any]]) -> None:
        _check_name(name)
        self._collections[name] = copy.deepcopy(list(records))

    def has_collection(self, name: str) -> bool:
        return name in self._collections

    def list_collections(self) -> List[str]:
        return sorted(self._collections)

    def delete_collection(self, name: str) -> None:
        self._collections.pop(name, None)

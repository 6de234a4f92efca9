"""
Which fields of each record type feed the embedding, and how the resulting
text is fingerprinted for staleness checks.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Tuple

from ..core.query import get_field

SEPARATOR = " | "


@dataclass(frozen=True)
class EmbeddingFields:
    fields: Tuple[str, ...]
    separator: str = SEPARATOR


EMBEDDING_CONFIG: Dict[str, EmbeddingFields] = {
    "task": EmbeddingFields(("name", "goal_statement", "context", "acceptance_criteria")),
    "decision": EmbeddingFields(("title", "context", "decision", "rationale")),
    "risk": EmbeddingFields(("description", "impact", "mitigation")),
    "session_log": EmbeddingFields(("exact_state", "completed_this_session", "next_actions")),
    "question": EmbeddingFields(("description", "options")),
}


def is_embeddable(entity_type: str, config: Mapping[str, EmbeddingFields] = EMBEDDING_CONFIG) -> bool:
    return entity_type in config


def get_embedding_text(entity_type: str, record: Any,
                       config: Mapping[str, EmbeddingFields] = EMBEDDING_CONFIG) -> Optional[str]:
    """Concatenate the configured fields of a record.

    Args:
        entity_type: Record type name
        record: Record or mapping to read fields from
        config: Per-type field configuration

    Returns:
        The joined text, or None if the type is not embeddable or every
        configured field is empty
    """
    entry = config.get(entity_type)
    if entry is None:
        return None

    parts = []
    for field in entry.fields:
        value = get_field(record, field)
        if value is None or value == "":
            continue
        parts.append(value if isinstance(value, str) else json.dumps(value))

    return entry.separator.join(parts) if parts else None


def compute_embed_hash(text: str) -> str:
    """Short content fingerprint: first 8 hex chars of SHA-256."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()[:8]

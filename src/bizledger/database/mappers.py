"""Mapper functions between snapshot documents and SQLAlchemy rows."""

import json
from typing import Any

from bizledger.database.models import Snapshot as ORMSnapshot


def snapshot_to_document(orm_snapshot: ORMSnapshot) -> dict[str, Any]:
    """Decode a stored snapshot.

    Raises:
        ValueError: If the text is not valid JSON or not a JSON object
    """
    document = json.loads(orm_snapshot.document)
    if not isinstance(document, dict):
        raise ValueError(f"Snapshot '{orm_snapshot.name}' does not hold a JSON object")
    return document


def document_to_text(document: dict[str, Any]) -> str:
    """Encode a snapshot document for storage."""
    return json.dumps(document, ensure_ascii=False, sort_keys=True)

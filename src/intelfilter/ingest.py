"""Ingest boundary: turn annotator output into fresh, normalized documents."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from intelfilter.models import Disposition, Document

logger = logging.getLogger(__name__)


def ingest(records: Iterable[Document | Mapping[str, Any]]) -> list[Document]:
    """Return new :class:`Document` objects for *records*, leaving the originals untouched.

    Pipeline state left on incoming documents is cleared, and clashing ids are
    suffixed (``id~2``, ``id~3`` …) so every document in the batch is addressable.
    """
    docs: list[Document] = []
    seen: dict[str, int] = {}
    for index, record in enumerate(records):
        if isinstance(record, Document):
            doc = record.model_copy(deep=True)
        elif isinstance(record, Mapping):
            doc = Document.model_validate(dict(record))
        else:
            raise TypeError(f"record {index} is {type(record).__name__}, expected a mapping or Document")
        _reset(doc)

        if doc.id in seen:
            seen[doc.id] += 1
            renamed = f"{doc.id}~{seen[doc.id]}"
            logger.warning("Duplicate document id %r at position %d; renamed to %r", doc.id, index, renamed)
            doc.id = renamed
        seen.setdefault(doc.id, 1)
        docs.append(doc)
    return docs


def _reset(doc: Document) -> None:
    doc.status = Disposition.PENDING
    doc.verdicts = []
    doc.score = None
    doc.rejection = None
    doc.final_quality_score = None
    doc.quality_level = None

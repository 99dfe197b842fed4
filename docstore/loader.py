"""Load the static documentation set used for keyword retrieval.

The document set is small and fixed for the lifetime of the process: it is
either one of the built-in corpora in :mod:`docstore.corpus` or a JSON file
read once at startup.  A :class:`DocumentStore` wraps the entries in an
immutable, ordered container so the scorer can treat it as read-only
configuration.
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocEntry:
    """A single documentation entry. Identity is the title."""

    title: str
    content: str
    keywords: Tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "DocEntry":
        if not isinstance(payload, dict):
            raise ValueError("document entries must be JSON objects")
        title = payload.get("title")
        content = payload.get("content")
        if not isinstance(title, str) or not title.strip():
            raise ValueError("document entries require a non-empty 'title'")
        if not isinstance(content, str):
            raise ValueError(f"document '{title}' requires a string 'content'")
        keywords = payload.get("keywords") or []
        if not isinstance(keywords, list) or not all(isinstance(k, str) for k in keywords):
            raise ValueError(f"document '{title}' keywords must be a list of strings")
        return cls(title=title, content=content, keywords=tuple(keywords))

    def to_dict(self) -> Dict[str, Any]:
        return {"title": self.title, "content": self.content, "keywords": list(self.keywords)}


class DocumentStore(Sequence[DocEntry]):
    """Immutable ordered collection of :class:`DocEntry` objects."""

    def __init__(self, entries: Iterable[DocEntry]) -> None:
        docs = tuple(entries)
        seen = set()
        for doc in docs:
            if doc.title in seen:
                raise ValueError(f"duplicate document title '{doc.title}'")
            seen.add(doc.title)
        self._docs: Tuple[DocEntry, ...] = docs

    def __getitem__(self, index):  # type: ignore[override]
        return self._docs[index]

    def __len__(self) -> int:
        return len(self._docs)

    def __iter__(self) -> Iterator[DocEntry]:
        return iter(self._docs)

    def __repr__(self) -> str:
        return f"DocumentStore({len(self._docs)} entries)"

    @property
    def titles(self) -> List[str]:
        return [doc.title for doc in self._docs]

    def get(self, title: str) -> Optional[DocEntry]:
        """Return the entry with ``title`` or ``None``."""
        for doc in self._docs:
            if doc.title == title:
                return doc
        return None


def load_documents(path: str) -> DocumentStore:
    """Read a JSON list of ``{title, content, keywords}`` records from ``path``."""
    start_time = time.perf_counter()
    docs_path = Path(path)
    if not docs_path.exists():
        raise FileNotFoundError(f"Documents file not found at {docs_path}")

    logger.info("Loading documents from %s", docs_path)
    with docs_path.open("r", encoding="utf-8") as f:
        payload = json.load(f)

    if not isinstance(payload, list):
        raise ValueError("documents file must contain a list of entries")

    store = DocumentStore(DocEntry.from_dict(item) for item in payload)
    elapsed = time.perf_counter() - start_time
    logger.info("Loaded %d document(s) in %.2f seconds", len(store), elapsed)
    return store

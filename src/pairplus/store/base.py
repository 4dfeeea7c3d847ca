"""Document store interface.

The store is the only shared mutable state in PairPlus. Records are plain
dicts addressed by ``(collection, id)``; every mutation is a field-level
merge so concurrent writers touching different fields do not clobber
each other.
"""

import logging
from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)

Document = dict[str, Any]

# Receives (doc_id, data after the write); data is None when the record was deleted.
WriteListener = Callable[[str, Optional[Document]], Awaitable[None]]


class _ServerTimestamp:
    """Sentinel resolved by the backend to its own notion of "now"."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "SERVER_TIMESTAMP"


SERVER_TIMESTAMP = _ServerTimestamp()


class DocumentStore(ABC):
    """Abstract key/document API with last-write-wins field merges."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[WriteListener]] = defaultdict(list)

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        """Return a snapshot of the record, or None if absent."""

    @abstractmethod
    async def get_many(
        self, collection: str, doc_ids: list[str],
    ) -> list[tuple[str, Document]]:
        """Membership lookup: every existing record whose id is in ``doc_ids``.

        Missing ids are skipped. Result order is backend-defined.
        """

    @abstractmethod
    async def merge(
        self,
        collection: str,
        doc_id: str,
        fields: Document,
        must_exist: bool = False,
    ) -> bool:
        """Merge ``fields`` into the record, creating it unless ``must_exist``.

        Returns False (and writes nothing) only when ``must_exist`` is set
        and the record is absent.
        """

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> None:
        """Delete the record if it exists."""

    # ── Write events ──

    def subscribe(self, collection: str, listener: WriteListener) -> None:
        """Register a listener for writes to ``collection``.

        Only backends that observe their own writes emit events; for the
        others, change events arrive through the internal trigger route.
        """
        self._listeners[collection].append(listener)

    async def _notify(
        self, collection: str, doc_id: str, data: Optional[Document],
    ) -> None:
        for listener in list(self._listeners.get(collection, ())):
            try:
                await listener(doc_id, data)
            except Exception:
                logger.exception(
                    "Write listener failed for %s/%s", collection, doc_id,
                )

"""Document store on SQLAlchemy async — one JSON row per record."""

import logging
from typing import Optional

from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError

from pairplus.common.database import DatabaseManager
from pairplus.common.exceptions import PersistenceError
from pairplus.common.models import utcnow
from pairplus.store.base import SERVER_TIMESTAMP, Document, DocumentStore
from pairplus.store.models import DocumentModel

logger = logging.getLogger(__name__)


def _resolve(fields: Document) -> Document:
    now = utcnow().isoformat()
    return {
        key: now if value is SERVER_TIMESTAMP else value
        for key, value in fields.items()
    }


class SqlDocumentStore(DocumentStore):
    """Stores documents in the ``documents`` table and emits write events.

    Listeners run after the write has committed, outside its session.
    """

    def __init__(self, db: DatabaseManager):
        super().__init__()
        self.db = db

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        try:
            async with self.db.get_session() as session:
                row = await session.get(DocumentModel, (collection, doc_id))
                return dict(row.data or {}) if row is not None else None
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to read {collection}/{doc_id}") from exc

    async def get_many(
        self, collection: str, doc_ids: list[str],
    ) -> list[tuple[str, Document]]:
        ids = list(dict.fromkeys(doc_ids))
        if not ids:
            return []
        try:
            async with self.db.get_session() as session:
                result = await session.execute(
                    select(DocumentModel).where(
                        DocumentModel.collection == collection,
                        DocumentModel.id.in_(ids),
                    )
                )
                return [(row.id, dict(row.data or {})) for row in result.scalars().all()]
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to batch-read {collection}") from exc

    async def merge(
        self,
        collection: str,
        doc_id: str,
        fields: Document,
        must_exist: bool = False,
    ) -> bool:
        try:
            async with self.db.get_session() as session:
                row = await session.get(
                    DocumentModel, (collection, doc_id), with_for_update=True,
                )
                if row is None:
                    if must_exist:
                        logger.debug("Skipping update of missing %s/%s", collection, doc_id)
                        return False
                    row = DocumentModel(collection=collection, id=doc_id, data={})
                    session.add(row)
                merged = {**(row.data or {}), **_resolve(fields)}
                row.data = merged
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to write {collection}/{doc_id}") from exc

        await self._notify(collection, doc_id, merged)
        return True

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            async with self.db.get_session() as session:
                result = await session.execute(
                    delete(DocumentModel).where(
                        DocumentModel.collection == collection,
                        DocumentModel.id == doc_id,
                    )
                )
                deleted = result.rowcount > 0
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Failed to delete {collection}/{doc_id}") from exc

        if deleted:
            await self._notify(collection, doc_id, None)

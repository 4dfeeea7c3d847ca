"""Document store on Cloud Firestore (async client from firebase-admin)."""

import logging
from typing import Any, Optional

from google.api_core import exceptions as gexc
from google.cloud import firestore

from pairplus.common.exceptions import PersistenceError
from pairplus.store.base import SERVER_TIMESTAMP, Document, DocumentStore

logger = logging.getLogger(__name__)


def _resolve(fields: Document) -> Document:
    return {
        key: firestore.SERVER_TIMESTAMP if value is SERVER_TIMESTAMP else value
        for key, value in fields.items()
    }


class FirestoreDocumentStore(DocumentStore):
    """Firestore-backed store.

    Firestore change events are delivered by the platform, so this store
    never notifies subscribers itself.
    """

    def __init__(self, client: Any):
        super().__init__()
        self.client = client

    def _ref(self, collection: str, doc_id: str):
        return self.client.collection(collection).document(doc_id)

    async def get(self, collection: str, doc_id: str) -> Optional[Document]:
        try:
            snap = await self._ref(collection, doc_id).get()
        except gexc.GoogleAPICallError as exc:
            raise PersistenceError(f"Failed to read {collection}/{doc_id}") from exc
        if not snap.exists:
            return None
        return snap.to_dict() or {}

    async def get_many(
        self, collection: str, doc_ids: list[str],
    ) -> list[tuple[str, Document]]:
        ids = list(dict.fromkeys(doc_ids))
        if not ids:
            return []
        refs = [self._ref(collection, doc_id) for doc_id in ids]
        found = []
        try:
            async for snap in self.client.get_all(refs):
                if snap.exists:
                    found.append((snap.id, snap.to_dict() or {}))
        except gexc.GoogleAPICallError as exc:
            raise PersistenceError(f"Failed to batch-read {collection}") from exc
        return found

    async def merge(
        self,
        collection: str,
        doc_id: str,
        fields: Document,
        must_exist: bool = False,
    ) -> bool:
        ref = self._ref(collection, doc_id)
        try:
            if must_exist:
                await ref.update(_resolve(fields))
            else:
                await ref.set(_resolve(fields), merge=True)
        except gexc.NotFound as exc:
            if must_exist:
                logger.debug("Skipping update of missing %s/%s", collection, doc_id)
                return False
            raise PersistenceError(f"Failed to write {collection}/{doc_id}") from exc
        except gexc.GoogleAPICallError as exc:
            raise PersistenceError(f"Failed to write {collection}/{doc_id}") from exc
        return True

    async def delete(self, collection: str, doc_id: str) -> None:
        try:
            await self._ref(collection, doc_id).delete()
        except gexc.GoogleAPICallError as exc:
            raise PersistenceError(f"Failed to delete {collection}/{doc_id}") from exc

"""Entitlement sync — persist a user's Plus flag and refresh their pair."""

import logging

from pairplus.common.config import PairPlusSettings
from pairplus.pairs.service import PairReconciler
from pairplus.store.base import SERVER_TIMESTAMP, DocumentStore

logger = logging.getLogger(__name__)


class EntitlementSyncService:
    """Writes ``isPlus`` onto user records."""

    def __init__(
        self,
        settings: PairPlusSettings,
        store: DocumentStore,
        reconciler: PairReconciler,
    ):
        self.settings = settings
        self.store = store
        self.reconciler = reconciler

    async def sync(self, uid: str, is_active: bool) -> None:
        """Merge the flag into the user record, then reconcile their pair.

        Repeating a call with the same flag rewrites the same value and
        leaves the pair untouched.
        """
        users = self.settings.users_collection
        await self.store.merge(
            users, uid, {"isPlus": bool(is_active), "updatedAt": SERVER_TIMESTAMP},
        )

        # Re-read: the pairing flow may have linked or unlinked the user meanwhile.
        user = await self.store.get(users, uid) or {}
        pair_id = user.get("pairId")
        if not pair_id:
            return

        logger.debug("User %s belongs to pair %s; reconciling", uid, pair_id)
        await self.reconciler.reconcile(pair_id)

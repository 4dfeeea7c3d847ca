"""Reconciliation trigger — runs on every write to a pair record."""

import logging
from typing import Optional

from pairplus.pairs.service import PairReconciler
from pairplus.store.base import Document

logger = logging.getLogger(__name__)


class PairWriteTrigger:
    """Write listener for the pairs collection.

    Subscribed to stores that emit their own write events, and invoked by
    the internal trigger route for platform-delivered change events.
    """

    def __init__(self, reconciler: PairReconciler):
        self.reconciler = reconciler

    async def __call__(self, pair_id: str, after: Optional[Document]) -> bool:
        return await self.handle(pair_id, exists=after is not None)

    async def handle(self, pair_id: str, exists: bool) -> bool:
        """Reconcile unless the write deleted the pair. Returns True on a write."""
        if not exists:
            logger.debug("Pair %s deleted; skipping reconciliation", pair_id)
            return False
        return await self.reconciler.reconcile(pair_id)

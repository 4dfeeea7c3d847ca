"""Pair reconciliation — derive a pair's shared Plus state from its members."""

import logging
from dataclasses import dataclass
from typing import Any, Optional

from pairplus.common.config import PairPlusSettings
from pairplus.store.base import SERVER_TIMESTAMP, Document, DocumentStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PairState:
    plus_active: bool = False
    plus_owner_uid: Optional[str] = None

    def matches(self, pair: Document) -> bool:
        """True when the stored pair already carries exactly this state."""
        return (
            pair.get("plusActive") is self.plus_active
            and pair.get("plusOwnerUid") == self.plus_owner_uid
        )

    def to_fields(self) -> dict[str, Any]:
        return {
            "plusActive": self.plus_active,
            "plusOwnerUid": self.plus_owner_uid,
            "plusGraceUntil": None,
            "updatedAt": SERVER_TIMESTAMP,
        }


def member_uids_of(pair: Document) -> list[str]:
    uids = pair.get("memberUids") or []
    if not isinstance(uids, list):
        return []
    return [uid for uid in uids if isinstance(uid, str) and uid]


def derive_pair_state(
    member_uids: list[str],
    members: list[tuple[str, Document]],
) -> PairState:
    """Compute a pair's Plus state from its members' user records.

    ``members`` may arrive in any order; they are considered in
    ``member_uids`` order so the owner is the first listed member whose
    ``isPlus`` is exactly True. Records of non-members are ignored.
    """
    position = {uid: i for i, uid in reversed(list(enumerate(member_uids)))}
    ordered = sorted(
        (m for m in members if m[0] in position),
        key=lambda m: position[m[0]],
    )

    plus_active = False
    plus_owner_uid = None
    for uid, data in ordered:
        if (data or {}).get("isPlus") is True:
            plus_active = True
            if plus_owner_uid is None:
                plus_owner_uid = uid
    return PairState(plus_active=plus_active, plus_owner_uid=plus_owner_uid)


class PairReconciler:
    """Recomputes and stores the derived Plus fields on pair records.

    The result depends only on current store contents, and a pass whose
    derived state already matches the stored one writes nothing.
    """

    def __init__(self, settings: PairPlusSettings, store: DocumentStore):
        self.settings = settings
        self.store = store

    async def reconcile(self, pair_id: str) -> bool:
        """Bring the pair's Plus fields in line with its members.

        Returns True if the pair record was written.
        """
        pairs = self.settings.pairs_collection
        pair = await self.store.get(pairs, pair_id)
        if pair is None:
            logger.debug("Pair %s no longer exists; nothing to reconcile", pair_id)
            return False

        member_uids = member_uids_of(pair)
        if not member_uids:
            derived = PairState()
            # Written once when the pair empties; later passes see the cleared state.
            if pair.get("plusActive") is False and pair.get("plusOwnerUid") is None:
                return False
        else:
            members = await self.store.get_many(self.settings.users_collection, member_uids)
            derived = derive_pair_state(member_uids, members)
            if derived.matches(pair):
                logger.debug("Pair %s already consistent", pair_id)
                return False

        written = await self.store.merge(pairs, pair_id, derived.to_fields(), must_exist=True)
        if written:
            logger.info(
                "Reconciled pair %s: plusActive=%s plusOwnerUid=%s",
                pair_id, derived.plus_active, derived.plus_owner_uid,
                extra={"pair_id": pair_id},
            )
        return written

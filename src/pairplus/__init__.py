"""PairPlus: storefront receipt verification and shared Plus entitlement for paired accounts."""

from pairplus.pairs.service import PairReconciler, PairState, derive_pair_state
from pairplus.storefronts.app_store import normalize_app_store_receipt
from pairplus.storefronts.entitlement import Entitlement
from pairplus.storefronts.google_play import normalize_play_subscription

__all__ = [
    "Entitlement",
    "PairReconciler",
    "PairState",
    "derive_pair_state",
    "normalize_app_store_receipt",
    "normalize_play_subscription",
]
__version__ = "0.1.0"

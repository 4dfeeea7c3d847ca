"""Dependency injection singletons for PairPlus."""

from pairplus.common.config import get_settings
from pairplus.common.database import DatabaseManager
from pairplus.entitlements.service import EntitlementSyncService
from pairplus.identity.verifier import FirebaseTokenVerifier, TokenVerifier
from pairplus.pairs.service import PairReconciler
from pairplus.pairs.trigger import PairWriteTrigger
from pairplus.store.base import DocumentStore
from pairplus.storefronts.base import Storefront
from pairplus.storefronts.registry import build_storefronts
from pairplus.verification.service import VerificationService

_db: DatabaseManager | None = None
_store: DocumentStore | None = None
_reconciler: PairReconciler | None = None
_trigger: PairWriteTrigger | None = None
_sync: EntitlementSyncService | None = None
_token_verifier: TokenVerifier | None = None
_storefronts: dict[str, Storefront] | None = None
_verification: VerificationService | None = None


def get_db() -> DatabaseManager:
    global _db
    if _db is None:
        _db = DatabaseManager(get_settings())
    return _db


def get_store() -> DocumentStore:
    global _store
    if _store is None:
        settings = get_settings()
        if settings.store_backend == "firestore":
            from firebase_admin import firestore_async
            from pairplus.common.firebase import get_firebase_app
            from pairplus.store.firestore import FirestoreDocumentStore
            _store = FirestoreDocumentStore(
                firestore_async.client(app=get_firebase_app(settings)),
            )
        else:
            from pairplus.store.sql import SqlDocumentStore
            _store = SqlDocumentStore(get_db())
        _store.subscribe(settings.pairs_collection, get_pair_trigger())
    return _store


def get_reconciler() -> PairReconciler:
    global _reconciler
    # Building the store wires its pair trigger, which builds the reconciler.
    store = get_store()
    if _reconciler is None:
        _reconciler = PairReconciler(get_settings(), store)
    return _reconciler


def get_pair_trigger() -> PairWriteTrigger:
    global _trigger
    reconciler = get_reconciler()
    if _trigger is None:
        _trigger = PairWriteTrigger(reconciler)
    return _trigger


def get_sync_service() -> EntitlementSyncService:
    global _sync
    if _sync is None:
        _sync = EntitlementSyncService(get_settings(), get_store(), get_reconciler())
    return _sync


def get_token_verifier() -> TokenVerifier:
    global _token_verifier
    if _token_verifier is None:
        _token_verifier = FirebaseTokenVerifier(get_settings())
    return _token_verifier


def get_storefronts() -> dict[str, Storefront]:
    global _storefronts
    if _storefronts is None:
        _storefronts = build_storefronts(get_settings())
    return _storefronts


def get_verification_service() -> VerificationService:
    global _verification
    if _verification is None:
        _verification = VerificationService(
            get_settings(), get_storefronts(), get_sync_service(),
        )
    return _verification


def reset_singletons() -> None:
    """Reset all singletons (for testing)."""
    global _db, _store, _reconciler, _trigger, _sync, _token_verifier, _storefronts, _verification
    _db = None
    _store = None
    _reconciler = None
    _trigger = None
    _sync = None
    _token_verifier = None
    _storefronts = None
    _verification = None

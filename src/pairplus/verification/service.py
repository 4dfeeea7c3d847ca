"""VerificationService — verify a purchase and sync the caller's entitlement."""

import logging
from typing import Optional

from pairplus.common.config import PairPlusSettings
from pairplus.common.exceptions import ValidationError
from pairplus.entitlements.service import EntitlementSyncService
from pairplus.storefronts.base import Storefront
from pairplus.storefronts.registry import select_storefront
from pairplus.verification.schemas import VerifyPurchaseRequest, VerifyPurchaseResponse

logger = logging.getLogger(__name__)

STATUS_ACTIVE = "active"
STATUS_EXPIRED = "expired"


class VerificationService:
    """Dispatches to the caller's storefront and records the outcome."""

    def __init__(
        self,
        settings: PairPlusSettings,
        storefronts: dict[str, Storefront],
        sync_service: EntitlementSyncService,
    ):
        self.settings = settings
        self.storefronts = storefronts
        self.sync_service = sync_service

    async def verify_purchase(
        self,
        uid: str,
        request: VerifyPurchaseRequest,
        now_ms: Optional[int] = None,
    ) -> VerifyPurchaseResponse:
        """Verify, normalize, persist.

        Steps:
        1. Select the storefront for the request's platform
        2. Ask its verification authority about the credential
        3. Stop early, without persisting, if the authority refused it
        4. Normalize to an Entitlement and sync the user's flag
        """
        if not request.complete:
            raise ValidationError("Missing required fields")
        storefront = select_storefront(self.storefronts, request.platform)

        raw = await storefront.verify(request.verification_data, request.product_id)

        rejected = storefront.rejection_status(raw)
        if rejected is not None:
            logger.info(
                "Verification authority rejected %s credential for %s: status=%s",
                storefront.platform, uid, rejected,
                extra={"uid": uid, "platform": storefront.platform},
            )
            return VerifyPurchaseResponse(
                active=False,
                status=rejected,
                verification_source=request.verification_source,
            )

        entitlement = storefront.normalize(raw, request.product_id, now_ms=now_ms)
        await self.sync_service.sync(uid, entitlement.active)

        logger.info(
            "Verified %s purchase for %s: active=%s",
            storefront.platform, uid, entitlement.active,
            extra={"uid": uid, "platform": storefront.platform},
        )
        return VerifyPurchaseResponse(
            active=entitlement.active,
            expires_at=entitlement.expires_at,
            product_id=entitlement.product_id,
            status=STATUS_ACTIVE if entitlement.active else STATUS_EXPIRED,
            verification_source=request.verification_source,
        )

"""App Store receipt verification (verifyReceipt) and normalization."""

import logging
from typing import Any, Optional

import httpx

from pairplus.common.config import APPLE_VERIFY_PRODUCTION, APPLE_VERIFY_SANDBOX, PairPlusSettings
from pairplus.common.exceptions import ConfigError, VerificationAuthorityError
from pairplus.storefronts.base import Storefront
from pairplus.storefronts.entitlement import (
    Entitlement,
    millis_to_iso,
    now_millis,
    parse_millis,
)

logger = logging.getLogger(__name__)

STATUS_OK = 0
# "This receipt is from the test environment, but it was sent to the
# production environment for verification."
STATUS_SANDBOX_RECEIPT = 21007


class AppStoreClient:
    """Posts receipts to verifyReceipt, falling back to sandbox once on 21007."""

    def __init__(
        self,
        shared_secret: str,
        production_url: str = APPLE_VERIFY_PRODUCTION,
        sandbox_url: str = APPLE_VERIFY_SANDBOX,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.shared_secret = shared_secret
        self.production_url = production_url
        self.sandbox_url = sandbox_url
        self.timeout = timeout
        self._transport = transport

    async def verify_receipt(self, receipt_data: str) -> dict[str, Any]:
        payload = {
            "receipt-data": receipt_data,
            "password": self.shared_secret,
            "exclude-old-transactions": True,
        }
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            result = await self._post(client, self.production_url, payload)
            if result["status"] == STATUS_SANDBOX_RECEIPT:
                logger.info("Sandbox receipt sent to production; retrying against sandbox")
                return await self._post(client, self.sandbox_url, payload)
            return result

    async def _post(
        self, client: httpx.AsyncClient, url: str, payload: dict[str, Any],
    ) -> dict[str, Any]:
        try:
            resp = await client.post(url, json=payload)
            resp.raise_for_status()
            data = resp.json()
        except httpx.TimeoutException as exc:
            raise VerificationAuthorityError("App Store verification timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise VerificationAuthorityError(
                f"App Store verification returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise VerificationAuthorityError("App Store verification request failed") from exc
        except ValueError as exc:
            raise VerificationAuthorityError("App Store verification returned non-JSON body") from exc

        if not isinstance(data, dict) or not isinstance(data.get("status"), int):
            raise VerificationAuthorityError("App Store response has no status")
        return data


def normalize_app_store_receipt(
    raw: dict[str, Any],
    product_id: Optional[str],
    now_ms: Optional[int] = None,
) -> Entitlement:
    """Reduce a verifyReceipt response to an Entitlement.

    Transactions come from ``latest_receipt_info``, falling back to
    ``receipt.in_app`` only when that key is absent. When ``product_id``
    is given only its transactions count. The winning transaction is the one with the greatest
    ``max(expires_date_ms, purchase_date_ms)``; on a tie the earlier one
    in the list wins. It is active while unexpired and not cancelled.
    """
    if not isinstance(raw, dict):
        raise VerificationAuthorityError("App Store response is not an object")
    now = now_millis() if now_ms is None else now_ms

    transactions = raw.get("latest_receipt_info")
    # An empty latest_receipt_info means no transactions; in_app is only
    # consulted when the key is absent.
    if transactions is None:
        receipt = raw.get("receipt") or {}
        if not isinstance(receipt, dict):
            raise VerificationAuthorityError("App Store receipt is not an object")
        transactions = receipt.get("in_app") or []
    if not isinstance(transactions, list) or not all(isinstance(t, dict) for t in transactions):
        raise VerificationAuthorityError("App Store transaction list has unexpected shape")

    if product_id:
        transactions = [t for t in transactions if t.get("product_id") == product_id]
    if not transactions:
        return Entitlement.inactive()

    latest = transactions[0]
    latest_ms = _sort_key(latest)
    for txn in transactions[1:]:
        txn_ms = _sort_key(txn)
        if txn_ms > latest_ms:
            latest, latest_ms = txn, txn_ms

    expires_ms = parse_millis(latest.get("expires_date_ms"), "expires_date_ms")
    cancelled_ms = parse_millis(latest.get("cancellation_date_ms"), "cancellation_date_ms")

    return Entitlement(
        active=expires_ms > now and cancelled_ms == 0,
        expires_at=millis_to_iso(expires_ms),
        product_id=latest.get("product_id") or product_id or None,
    )


def _sort_key(txn: dict[str, Any]) -> int:
    return max(
        parse_millis(txn.get("expires_date_ms"), "expires_date_ms"),
        parse_millis(txn.get("purchase_date_ms"), "purchase_date_ms"),
    )


class AppStoreStorefront(Storefront):
    platform = "ios"

    def __init__(
        self,
        settings: PairPlusSettings,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(settings)
        self._transport = transport

    def client(self) -> AppStoreClient:
        if not self.settings.apple_configured:
            raise ConfigError("APPLE_SHARED_SECRET not configured")
        return AppStoreClient(
            self.settings.apple_shared_secret,
            production_url=self.settings.apple_production_url,
            sandbox_url=self.settings.apple_sandbox_url,
            timeout=self.settings.verification_timeout,
            transport=self._transport,
        )

    async def verify(self, verification_data: str, product_id: str) -> dict[str, Any]:
        return await self.client().verify_receipt(verification_data)

    def normalize(
        self,
        raw: dict[str, Any],
        product_id: Optional[str],
        now_ms: Optional[int] = None,
    ) -> Entitlement:
        return normalize_app_store_receipt(raw, product_id, now_ms=now_ms)

    def rejection_status(self, raw: dict[str, Any]) -> Optional[str]:
        status = raw.get("status")
        if status != STATUS_OK:
            return str(status)
        return None

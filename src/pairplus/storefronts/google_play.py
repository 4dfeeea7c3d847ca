"""Google Play subscription verification (Android Publisher API v3)."""

import asyncio
import json
import logging
from typing import Any, Optional
from urllib.parse import quote

import google.auth.exceptions
import google.auth.transport.requests
import httpx
from google.oauth2 import service_account

from pairplus.common.config import ANDROID_PUBLISHER_URL, PairPlusSettings
from pairplus.common.exceptions import ConfigError, VerificationAuthorityError
from pairplus.storefronts.base import Storefront
from pairplus.storefronts.entitlement import (
    Entitlement,
    millis_to_iso,
    now_millis,
    parse_millis,
)

logger = logging.getLogger(__name__)

ANDROID_PUBLISHER_SCOPE = "https://www.googleapis.com/auth/androidpublisher"


def load_service_account(service_account_json: str):
    """Build scoped service-account credentials from their JSON key."""
    try:
        info = json.loads(service_account_json)
        return service_account.Credentials.from_service_account_info(
            info, scopes=[ANDROID_PUBLISHER_SCOPE],
        )
    except (ValueError, KeyError, TypeError) as exc:
        raise ConfigError("GOOGLE_SERVICE_ACCOUNT_JSON is not a valid service account key") from exc


class GooglePlayClient:
    """Fetches subscription state for a purchase token."""

    def __init__(
        self,
        package_name: str,
        credentials,
        base_url: str = ANDROID_PUBLISHER_URL,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.package_name = package_name
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    async def _access_token(self) -> str:
        if not self.credentials.valid:
            try:
                # google-auth refreshes synchronously over requests.
                await asyncio.to_thread(
                    self.credentials.refresh, google.auth.transport.requests.Request(),
                )
            except google.auth.exceptions.GoogleAuthError as exc:
                raise VerificationAuthorityError("Google service account authentication failed") from exc
        return self.credentials.token

    async def get_subscription(self, subscription_id: str, purchase_token: str) -> dict[str, Any]:
        token = await self._access_token()
        url = (
            f"{self.base_url}/applications/{quote(self.package_name, safe='')}"
            f"/purchases/subscriptions/{quote(subscription_id, safe='')}"
            f"/tokens/{quote(purchase_token, safe='')}"
        )
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(url, headers={"Authorization": f"Bearer {token}"})
                resp.raise_for_status()
                data = resp.json()
        except httpx.TimeoutException as exc:
            raise VerificationAuthorityError("Google Play verification timed out") from exc
        except httpx.HTTPStatusError as exc:
            raise VerificationAuthorityError(
                f"Google Play verification returned HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise VerificationAuthorityError("Google Play verification request failed") from exc
        except ValueError as exc:
            raise VerificationAuthorityError("Google Play verification returned non-JSON body") from exc

        if not isinstance(data, dict):
            raise VerificationAuthorityError("Google Play response is not an object")
        return data


def normalize_play_subscription(
    raw: dict[str, Any],
    product_id: Optional[str],
    now_ms: Optional[int] = None,
) -> Entitlement:
    """Active strictly while ``expiryTimeMillis`` is in the future.

    Cancellation and refund fields are not consulted.
    """
    if not isinstance(raw, dict):
        raise VerificationAuthorityError("Google Play response is not an object")
    now = now_millis() if now_ms is None else now_ms
    expiry_ms = parse_millis(raw.get("expiryTimeMillis"), "expiryTimeMillis")
    return Entitlement(
        active=expiry_ms > now,
        expires_at=millis_to_iso(expiry_ms),
        product_id=product_id or None,
    )


class GooglePlayStorefront(Storefront):
    platform = "android"

    def __init__(
        self,
        settings: PairPlusSettings,
        credentials=None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(settings)
        self._credentials = credentials
        self._transport = transport

    def client(self) -> GooglePlayClient:
        if not self.settings.android_configured:
            raise ConfigError("Android verification not configured")
        if self._credentials is None:
            self._credentials = load_service_account(self.settings.google_service_account_json)
        return GooglePlayClient(
            self.settings.android_package_name,
            self._credentials,
            base_url=self.settings.android_publisher_url,
            timeout=self.settings.verification_timeout,
            transport=self._transport,
        )

    async def verify(self, verification_data: str, product_id: str) -> dict[str, Any]:
        return await self.client().get_subscription(product_id, verification_data)

    def normalize(
        self,
        raw: dict[str, Any],
        product_id: Optional[str],
        now_ms: Optional[int] = None,
    ) -> Entitlement:
        return normalize_play_subscription(raw, product_id, now_ms=now_ms)

"""Tests for Google Play verification — subscription lookup and normalization."""

import json

import google.auth.exceptions
import httpx
import pytest

from pairplus.common.exceptions import ConfigError, VerificationAuthorityError
from pairplus.storefronts.google_play import (
    GooglePlayClient,
    GooglePlayStorefront,
    load_service_account,
    normalize_play_subscription,
)

from tests.conftest import PACKAGE_NAME, PUBLISHER, FakeCredentials, make_settings

NOW = 1_760_000_000_000


class TestNormalizePlaySubscription:
    def test_future_expiry_is_active(self):
        ent = normalize_play_subscription(
            {"expiryTimeMillis": str(NOW + 1)}, "plus.monthly", now_ms=NOW,
        )
        assert ent.active is True
        assert ent.product_id == "plus.monthly"
        assert ent.expires_at == "2025-10-09T08:53:20.001Z"

    def test_expiry_equal_to_now_is_inactive(self):
        ent = normalize_play_subscription({"expiryTimeMillis": str(NOW)}, "p", now_ms=NOW)
        assert ent.active is False

    def test_past_expiry_is_inactive(self):
        ent = normalize_play_subscription({"expiryTimeMillis": str(NOW - 1)}, "p", now_ms=NOW)
        assert ent.active is False
        assert ent.expires_at is not None

    def test_missing_expiry_is_inactive(self):
        ent = normalize_play_subscription({}, "p", now_ms=NOW)
        assert ent.active is False
        assert ent.expires_at is None

    def test_cancellation_fields_not_consulted(self):
        raw = {
            "expiryTimeMillis": str(NOW + 60_000),
            "cancelReason": 0,
            "userCancellationTimeMillis": str(NOW - 60_000),
        }
        assert normalize_play_subscription(raw, "p", now_ms=NOW).active is True

    def test_garbage_expiry_raises(self):
        with pytest.raises(VerificationAuthorityError):
            normalize_play_subscription({"expiryTimeMillis": "tomorrow"}, "p", now_ms=NOW)


class TestGooglePlayClient:
    async def test_fetches_subscription_with_bearer_token(self, authority):
        authority.respond(PUBLISHER, {"expiryTimeMillis": "123", "kind": "androidpublisher#subscriptionPurchase"})
        client = GooglePlayClient(
            PACKAGE_NAME, FakeCredentials(token="tok-1"),
            base_url=PUBLISHER, transport=authority.transport,
        )
        data = await client.get_subscription("plus.monthly", "purchase-token/with=chars")
        assert data["expiryTimeMillis"] == "123"

        request = authority.requests[0]
        assert request.method == "GET"
        assert request.headers["Authorization"] == "Bearer tok-1"
        assert request.url.raw_path.decode().endswith(
            f"/applications/{PACKAGE_NAME}/purchases/subscriptions/plus.monthly"
            "/tokens/purchase-token%2Fwith%3Dchars"
        )

    async def test_refreshes_invalid_credentials(self, authority):
        authority.respond(PUBLISHER, {"expiryTimeMillis": "1"})
        creds = FakeCredentials(valid=False)
        client = GooglePlayClient(PACKAGE_NAME, creds, base_url=PUBLISHER, transport=authority.transport)
        await client.get_subscription("p", "t")
        assert creds.refreshed == 1

    async def test_refresh_failure_is_verification_error(self, authority):
        class BrokenCredentials(FakeCredentials):
            def refresh(self, request):
                raise google.auth.exceptions.RefreshError("invalid_grant")

        client = GooglePlayClient(
            PACKAGE_NAME, BrokenCredentials(valid=False),
            base_url=PUBLISHER, transport=authority.transport,
        )
        with pytest.raises(VerificationAuthorityError):
            await client.get_subscription("p", "t")
        assert authority.requests == []

    async def test_http_error_is_verification_error(self, authority):
        authority.respond(PUBLISHER, {"error": {"code": 410}}, status_code=410)
        client = GooglePlayClient(PACKAGE_NAME, FakeCredentials(), base_url=PUBLISHER, transport=authority.transport)
        with pytest.raises(VerificationAuthorityError) as exc_info:
            await client.get_subscription("p", "t")
        assert "410" in exc_info.value.message

    async def test_timeout_is_verification_error(self, authority):
        authority.fail(PUBLISHER, httpx.ReadTimeout("slow"))
        client = GooglePlayClient(PACKAGE_NAME, FakeCredentials(), base_url=PUBLISHER, transport=authority.transport)
        with pytest.raises(VerificationAuthorityError):
            await client.get_subscription("p", "t")


class TestGooglePlayStorefront:
    async def test_requires_configuration(self):
        storefront = GooglePlayStorefront(make_settings(android_package_name=""))
        with pytest.raises(ConfigError):
            await storefront.verify("token", "p")

    async def test_verify_passes_product_as_subscription_id(self, authority):
        authority.respond(PUBLISHER, {"expiryTimeMillis": "1"})
        storefront = GooglePlayStorefront(
            make_settings(), credentials=FakeCredentials(), transport=authority.transport,
        )
        await storefront.verify("purchase-token", "plus.yearly")
        assert "/subscriptions/plus.yearly/tokens/purchase-token" in str(authority.requests[0].url)

    def test_never_rejects_outright(self):
        storefront = GooglePlayStorefront(make_settings())
        assert storefront.rejection_status({}) is None
        assert storefront.platform == "android"

    def test_invalid_service_account_json(self):
        with pytest.raises(ConfigError):
            load_service_account("not json")

    def test_incomplete_service_account_key(self):
        with pytest.raises(ConfigError):
            load_service_account(json.dumps({"type": "service_account"}))

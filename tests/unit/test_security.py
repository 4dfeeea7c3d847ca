"""Tests for request authentication — bearer parsing and Firebase token checks."""

from unittest.mock import patch

import pytest
from firebase_admin import auth

from pairplus.common.exceptions import AuthError
from pairplus.common.security import authenticate, parse_bearer
from pairplus.identity.verifier import FirebaseTokenVerifier

from tests.conftest import StaticTokenVerifier, make_settings


class TestParseBearer:
    def test_valid(self):
        assert parse_bearer("Bearer abc.def") == "abc.def"

    def test_strips_whitespace(self):
        assert parse_bearer("Bearer   tok  ") == "tok"

    def test_missing(self):
        assert parse_bearer(None) is None
        assert parse_bearer("") is None

    def test_wrong_scheme(self):
        assert parse_bearer("Basic dXNlcjpwYXNz") is None
        assert parse_bearer("bearer tok") is None

    def test_empty_token(self):
        assert parse_bearer("Bearer    ") is None


class TestAuthenticate:
    async def test_returns_uid(self):
        verifier = StaticTokenVerifier({"tok": "uid-1"})
        assert await authenticate("Bearer tok", verifier) == "uid-1"

    async def test_missing_header(self):
        with pytest.raises(AuthError) as exc_info:
            await authenticate(None, StaticTokenVerifier({}))
        assert exc_info.value.status_code == 401

    async def test_rejected_token(self):
        with pytest.raises(AuthError):
            await authenticate("Bearer forged", StaticTokenVerifier({"tok": "uid-1"}))


class TestFirebaseTokenVerifier:
    async def test_valid_token(self):
        verifier = FirebaseTokenVerifier(make_settings(), app=object())
        with patch.object(auth, "verify_id_token", return_value={"uid": "firebase-uid"}) as mock_verify:
            assert await verifier.verify("id-token") == "firebase-uid"
        assert mock_verify.call_args.args[0] == "id-token"

    async def test_invalid_token(self):
        verifier = FirebaseTokenVerifier(make_settings(), app=object())
        with patch.object(auth, "verify_id_token", side_effect=auth.InvalidIdTokenError("bad")):
            assert await verifier.verify("id-token") is None

    async def test_expired_token(self):
        verifier = FirebaseTokenVerifier(make_settings(), app=object())
        with patch.object(auth, "verify_id_token", side_effect=auth.ExpiredIdTokenError("old", cause=None)):
            assert await verifier.verify("id-token") is None

    async def test_malformed_token(self):
        verifier = FirebaseTokenVerifier(make_settings(), app=object())
        with patch.object(auth, "verify_id_token", side_effect=ValueError("not a jwt")):
            assert await verifier.verify("id-token") is None

    async def test_empty_token_short_circuits(self):
        verifier = FirebaseTokenVerifier(make_settings(), app=object())
        with patch.object(auth, "verify_id_token") as mock_verify:
            assert await verifier.verify("") is None
        mock_verify.assert_not_called()

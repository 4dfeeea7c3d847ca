"""Identity-token verification — bearer token to principal id."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

from firebase_admin import auth

from pairplus.common.config import PairPlusSettings

logger = logging.getLogger(__name__)


class TokenVerifier(ABC):
    """Resolves an identity token to the principal id it was issued for."""

    @abstractmethod
    async def verify(self, token: str) -> Optional[str]:
        """Return the principal id, or None if the token is not valid."""


class FirebaseTokenVerifier(TokenVerifier):
    """Verifies Firebase Auth ID tokens with firebase-admin."""

    def __init__(self, settings: PairPlusSettings, app=None):
        self.settings = settings
        self._app = app

    def _get_app(self):
        if self._app is None:
            from pairplus.common.firebase import get_firebase_app
            self._app = get_firebase_app(self.settings)
        return self._app

    async def verify(self, token: str) -> Optional[str]:
        if not token:
            return None
        app = self._get_app()
        try:
            # verify_id_token may fetch signing certificates over HTTP.
            decoded = await asyncio.to_thread(auth.verify_id_token, token, app=app)
        except (auth.InvalidIdTokenError, ValueError) as exc:
            logger.info("Rejected identity token: %s", type(exc).__name__)
            return None
        return decoded.get("uid") or None

"""Storefront capability — one variant per purchase platform."""

from abc import ABC, abstractmethod
from typing import Any, Optional

from pairplus.common.config import PairPlusSettings
from pairplus.storefronts.entitlement import Entitlement


class Storefront(ABC):
    """Verifies a purchase credential and normalizes the authority's answer."""

    platform: str = ""

    def __init__(self, settings: PairPlusSettings):
        self.settings = settings

    @abstractmethod
    async def verify(self, verification_data: str, product_id: str) -> dict[str, Any]:
        """Call the verification authority and return its raw response."""

    @abstractmethod
    def normalize(
        self,
        raw: dict[str, Any],
        product_id: Optional[str],
        now_ms: Optional[int] = None,
    ) -> Entitlement:
        """Reduce a raw authority response to an Entitlement."""

    def rejection_status(self, raw: dict[str, Any]) -> Optional[str]:
        """Authority status code when it refused the credential outright."""
        return None

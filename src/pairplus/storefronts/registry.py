"""Platform tag → Storefront lookup."""

from pairplus.common.config import PairPlusSettings
from pairplus.common.exceptions import ValidationError
from pairplus.storefronts.app_store import AppStoreStorefront
from pairplus.storefronts.base import Storefront
from pairplus.storefronts.google_play import GooglePlayStorefront


def build_storefronts(settings: PairPlusSettings) -> dict[str, Storefront]:
    storefronts: list[Storefront] = [
        AppStoreStorefront(settings),
        GooglePlayStorefront(settings),
    ]
    return {sf.platform: sf for sf in storefronts}


def select_storefront(storefronts: dict[str, Storefront], platform: str) -> Storefront:
    try:
        return storefronts[platform]
    except KeyError:
        raise ValidationError("Unsupported platform") from None

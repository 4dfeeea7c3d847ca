"""Canonical entitlement value and timestamp helpers shared by storefronts."""

import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

from pairplus.common.exceptions import VerificationAuthorityError


@dataclass(frozen=True)
class Entitlement:
    """Whether a purchase currently grants access, plus optional metadata."""

    active: bool
    expires_at: Optional[str] = None
    product_id: Optional[str] = None

    @classmethod
    def inactive(cls) -> "Entitlement":
        return cls(active=False, expires_at=None, product_id=None)


def now_millis() -> int:
    return int(time.time() * 1000)


def parse_millis(value: Any, field: str = "timestamp") -> int:
    """Parse a millisecond timestamp; missing or empty means 0.

    Storefronts send these as numeric strings. Anything present that is
    not a whole number is an unexpected response shape.
    """
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise VerificationAuthorityError(f"Unexpected {field} value")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            pass
    raise VerificationAuthorityError(f"Unexpected {field} value")


def millis_to_iso(ms: int) -> Optional[str]:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix; None for 0."""
    if not ms:
        return None
    try:
        dt = datetime.fromtimestamp(ms / 1000, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise VerificationAuthorityError("Timestamp out of range") from exc
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")

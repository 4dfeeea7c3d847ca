"""Internal route for document-store change events on pair records."""

import logging

from fastapi import APIRouter, Depends, HTTPException

from pairplus.common.exceptions import PairPlusError
from pairplus.common.security import require_service_token
from pairplus.pairs.schemas import PairEventRequest, PairEventResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/internal/triggers", tags=["triggers"])


def _get_trigger():
    from pairplus.deps import get_pair_trigger
    return get_pair_trigger()


@router.post(
    "/pairs/{pair_id}",
    response_model=PairEventResponse,
    response_model_by_alias=True,
)
async def pair_written(
    pair_id: str,
    body: PairEventRequest | None = None,
    _=Depends(require_service_token),
):
    event = body or PairEventRequest()
    trigger = _get_trigger()
    try:
        reconciled = await trigger.handle(pair_id, exists=event.exists)
    except PairPlusError:
        logger.exception(
            "Reconciliation trigger failed for pair %s", pair_id, extra={"pair_id": pair_id},
        )
        raise HTTPException(status_code=500, detail="Internal error")
    return PairEventResponse(pair_id=pair_id, reconciled=reconciled)

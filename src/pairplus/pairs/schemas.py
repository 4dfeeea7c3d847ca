"""Pydantic schemas for pair change events."""

from pydantic import BaseModel, ConfigDict, Field


class PairEventRequest(BaseModel):
    """A change event on a pair record, as delivered by the document store."""

    exists: bool = True


class PairEventResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    pair_id: str = Field(..., alias="pairId")
    reconciled: bool

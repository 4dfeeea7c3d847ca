"""Pydantic schemas for the purchase verification endpoint."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class VerifyPurchaseRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    platform: str = ""
    product_id: str = Field(default="", alias="productId")
    verification_data: str = Field(default="", alias="verificationData")
    verification_source: Optional[str] = Field(default=None, alias="verificationSource")

    @property
    def complete(self) -> bool:
        return bool(self.platform and self.product_id and self.verification_data)


class VerifyPurchaseResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    active: bool
    expires_at: Optional[str] = Field(default=None, alias="expiresAt")
    product_id: Optional[str] = Field(default=None, alias="productId")
    status: str
    verification_source: Optional[str] = Field(default=None, alias="verificationSource")

    def to_json(self) -> dict[str, Any]:
        data = self.model_dump(by_alias=True)
        if data["verificationSource"] is None:
            del data["verificationSource"]
        return data


class ErrorResponse(BaseModel):
    active: bool = False
    error: str

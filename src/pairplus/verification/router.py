"""Purchase verification API router."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError as PydanticValidationError

from pairplus.common.exceptions import PairPlusError, ValidationError
from pairplus.common.security import authenticate
from pairplus.verification.schemas import ErrorResponse, VerifyPurchaseRequest

logger = logging.getLogger(__name__)

router = APIRouter()

ALLOWED_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def _get_service():
    from pairplus.deps import get_verification_service
    return get_verification_service()


def _get_verifier():
    from pairplus.deps import get_token_verifier
    return get_token_verifier()


def _cors_headers() -> dict[str, str]:
    from pairplus.common.config import get_settings
    return {
        "Access-Control-Allow-Origin": get_settings().cors_allow_origin,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type, Authorization",
    }


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message).model_dump(),
        headers=_cors_headers(),
    )


async def _read_body(request: Request) -> VerifyPurchaseRequest:
    raw = await request.body()
    try:
        if not raw.strip():
            return VerifyPurchaseRequest.model_validate({})
        return VerifyPurchaseRequest.model_validate_json(raw)
    except PydanticValidationError as exc:
        kinds = {error["type"] for error in exc.errors()}
        if "json_invalid" in kinds:
            raise ValidationError("Invalid JSON body") from None
        if "model_type" in kinds:
            raise ValidationError("Request body must be a JSON object") from None
        raise ValidationError("Malformed request fields") from None


@router.api_route("/verifyPurchase", methods=ALLOWED_METHODS)
async def verify_purchase(request: Request):
    if request.method == "OPTIONS":
        return Response(status_code=204, headers=_cors_headers())
    if request.method != "POST":
        return _error(405, "Method Not Allowed")

    try:
        uid = await authenticate(request.headers.get("Authorization"), _get_verifier())
        body = await _read_body(request)
        result = await _get_service().verify_purchase(uid, body)
    except PairPlusError as e:
        if e.public:
            return _error(e.status_code, e.message)
        logger.exception("verifyPurchase failed: %s", e.code)
        return _error(500, "Internal error")
    except Exception:
        logger.exception("verifyPurchase failed")
        return _error(500, "Internal error")

    return JSONResponse(status_code=200, content=result.to_json(), headers=_cors_headers())

"""Roaster's Choice webhook router, called by Shopify Flow."""
import hmac
import json
from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from app.config import settings
from app.errors import ErrorKind, RoastersChoiceError
from app.schemas import ErrorResponse
from app.services import roasters_choice_service
from app.services.pick_service import RoastersChoiceService

router = APIRouter()

ALL_METHODS = ["GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"]


def get_roasters_choice_service() -> RoastersChoiceService:
    return roasters_choice_service


def verify_rc_token(incoming: Optional[str]) -> None:
    """Reject unless the x-rc-token header equals the configured shared secret."""
    expected = settings.rc_shared_secret
    if not incoming or not expected:
        raise RoastersChoiceError(ErrorKind.AUTH, "Unauthorized")
    if not hmac.compare_digest(incoming.encode("utf-8"), expected.encode("utf-8")):
        raise RoastersChoiceError(ErrorKind.AUTH, "Unauthorized")


def parse_order_id(raw: bytes) -> str:
    """Parse the raw request body and return its order_id."""
    try:
        payload = json.loads(raw.decode("utf-8"))
    except (UnicodeDecodeError, ValueError):
        raise RoastersChoiceError(ErrorKind.VALIDATION, "Invalid JSON")

    order_id = payload.get("order_id") if isinstance(payload, dict) else None
    if not order_id or not isinstance(order_id, str):
        raise RoastersChoiceError(ErrorKind.VALIDATION, "Missing order_id")
    return order_id


@router.api_route(
    "/roasters-choice",
    methods=ALL_METHODS,
    responses={status: {"model": ErrorResponse} for status in (400, 401, 405, 409, 500)},
)
async def roasters_choice(
    request: Request,
    mode: Optional[str] = None,
    service: RoastersChoiceService = Depends(get_roasters_choice_service),
):
    """
    Pick a Roaster's Choice coffee for an order, or re-apply its note.

    POST {"order_id": "gid://shopify/Order/..."} with the x-rc-token header.
    Add ?mode=note to re-append a previously saved pick to the order note.
    """
    verify_rc_token(request.headers.get("x-rc-token"))

    if request.method != "POST":
        raise RoastersChoiceError(ErrorKind.METHOD, "Method Not Allowed")

    raw = await request.body()
    order_id = parse_order_id(raw)

    try:
        result = await run_in_threadpool(service.handle, order_id, mode)
    except RoastersChoiceError:
        raise
    except Exception as e:
        raise RoastersChoiceError(ErrorKind.INTERNAL, str(e) or e.__class__.__name__) from e

    return JSONResponse(status_code=200, content=result)

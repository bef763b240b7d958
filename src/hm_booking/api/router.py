"""hm_booking REST API: wallet-paid booking, cancellation, refund preview."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from src.hm_booking.application.cancellation import CancellationService
from src.hm_booking.application.schemas import CancelBookingRequest, CreateWithWalletRequest
from src.hm_booking.application.service import WalletBookingService
from src.hm_common.database import get_db_session
from src.hm_common.response import ApiResponse, success_response
from src.hm_gateway.auth.dependencies import CurrentUser, get_current_user

router = APIRouter(prefix="/appointments", tags=["appointments"])

_booking_service = WalletBookingService()
_cancellation_service = CancellationService()


@router.post("/create-with-wallet")
async def create_with_wallet(
    req: CreateWithWalletRequest,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _booking_service.create_with_wallet(db, current_user, req)
    return success_response(data, request)


@router.post("/{booking_id}/cancel")
async def cancel_booking(
    booking_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
    req: CancelBookingRequest | None = None,
) -> ApiResponse:
    reason = req.reason if req else None
    data = await _cancellation_service.cancel(db, booking_id, current_user, reason)
    return success_response(data, request)


@router.get("/{booking_id}/refund-preview")
async def refund_preview(
    booking_id: str,
    current_user: Annotated[CurrentUser, Depends(get_current_user)],
    db: Annotated[AsyncSession, Depends(get_db_session)],
    request: Request,
) -> ApiResponse:
    data = await _cancellation_service.preview(db, booking_id, current_user)
    return success_response(data, request)

"""Notification API routes."""
from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_session
from ..models import User
from ..schemas import NotificationListResponse, NotificationSummaryResponse, SuccessResponse
from ..services import count_unread_notifications, get_current_user, list_notifications, mark_all_read

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("", response_model=NotificationListResponse)
async def list_my_notifications(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> NotificationListResponse:
    records = list_notifications(db, actor=current_user)
    return NotificationListResponse.model_validate({"items": records}, from_attributes=True)


@router.get("/summary", response_model=NotificationSummaryResponse)
async def notification_summary_endpoint(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> NotificationSummaryResponse:
    return NotificationSummaryResponse(unread_count=count_unread_notifications(db, actor=current_user))


@router.post("/mark-read", response_model=SuccessResponse)
async def mark_notifications_read(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
) -> SuccessResponse:
    mark_all_read(db, actor=current_user)
    return SuccessResponse()

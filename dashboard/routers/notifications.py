from typing import Optional

from fastapi import APIRouter, Depends, Query

from dashboard.dependencies import get_caller, get_engine
from dashboard.schemas import (
    ClearNotificationsResponse,
    NotificationRecord,
    NotificationsResponse,
)
from orchestrator.core import PoolRiskEngine

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("/{user}", response_model=NotificationsResponse)
async def get_notifications(
    user: str,
    offset: int = Query(0),
    limit: Optional[int] = Query(None),
    engine: PoolRiskEngine = Depends(get_engine),
):
    page = engine.get_notifications(user, offset=offset, limit=limit)
    return NotificationsResponse(
        user=user,
        total=engine.notifier.notification_count(user),
        offset=offset,
        data=[NotificationRecord.model_validate(n) for n in page],
    )


@router.delete("/{user}", response_model=ClearNotificationsResponse)
async def clear_expired_notifications(
    user: str,
    max_age: int = Query(...),
    engine: PoolRiskEngine = Depends(get_engine),
    caller: str = Depends(get_caller),
):
    """Drop notifications at least max_age seconds old."""
    removed = engine.notifier.clear_expired_notifications(user, max_age, caller)
    return ClearNotificationsResponse(user=user, removed=removed)

from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.security import get_current_owner
from ..database import get_db
from ..schemas.analytics import DashboardStats, DetailedAnalytics, LinkAnalytics, RealtimeAnalytics
from ..services import analytics as analytics_service

router = APIRouter(prefix="/analytics")

Period = Literal["1d", "24h", "7d", "30d", "90d"]


@router.get("/dashboard", response_model=DashboardStats)
def get_dashboard_stats(
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner)
):
    return analytics_service.get_dashboard_stats(db, owner_id)


@router.get("/detailed", response_model=DetailedAnalytics)
def get_detailed_analytics(
    period: Period = "30d",
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner)
):
    return analytics_service.get_detailed_analytics(db, owner_id, period)


@router.get("/realtime", response_model=RealtimeAnalytics)
def get_realtime_analytics(
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner)
):
    return analytics_service.get_realtime_analytics(db, owner_id, limit)


@router.get("/links/{code}", response_model=LinkAnalytics)
def get_link_analytics(
    code: str,
    period: Period = "7d",
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner)
):
    """Analytics for a single link owned by the caller"""
    return analytics_service.get_link_analytics(db, owner_id, code, period)

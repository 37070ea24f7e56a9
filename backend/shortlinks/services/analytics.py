from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import List, Optional

from sqlalchemy import Integer, cast, extract, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Click, Link
from ..utils.timeutils import utcnow
from .links import get_owned_link, storage_failure

PERIODS = {
    "1d": timedelta(days=1),
    "24h": timedelta(hours=24),
    "7d": timedelta(days=7),
    "30d": timedelta(days=30),
    "90d": timedelta(days=90),
}
DEFAULT_PERIOD = "7d"


@dataclass(frozen=True)
class TimeWindow:
    """A [start, end] range computed from one "now" for every sub-query of a call"""
    period: str
    start: datetime
    end: datetime


def get_time_window(period: str, now: Optional[datetime] = None) -> TimeWindow:
    """Get the window for a given period; unknown periods fall back to 7 days"""
    now = now or utcnow()
    if period not in PERIODS:
        period = DEFAULT_PERIOD
    return TimeWindow(period=period, start=now - PERIODS[period], end=now)


def _scope(owner_id: str, start: datetime, end: datetime, link_id: Optional[int] = None) -> list:
    filters = [
        Click.owner_id == owner_id,
        Click.clicked_at >= start,
        Click.clicked_at <= end,
    ]
    if link_id is not None:
        filters.append(Click.link_id == link_id)
    return filters


def _percentage(clicks: int, total: int) -> float:
    return round(clicks / total * 100, 1) if total > 0 else 0


def get_totals(db: Session, filters: list) -> dict:
    """Total and unique clicks"""
    row = db.query(
        func.count(Click.id).label('clicks'),
        func.sum(cast(Click.is_unique, Integer)).label('unique_clicks')
    ).filter(*filters).one()

    return {
        "total_clicks": row.clicks or 0,
        "unique_clicks": row.unique_clicks or 0
    }


def get_clicks_by_day(db: Session, filters: list) -> List[dict]:
    """Get clicks aggregated by day"""
    day = func.date(Click.clicked_at)
    results = db.query(
        day.label('date'),
        func.count(Click.id).label('clicks'),
        func.sum(cast(Click.is_unique, Integer)).label('unique_clicks')
    ).filter(*filters).group_by(day).order_by(day).all()

    return [
        {
            "timestamp": row.date if isinstance(row.date, str) else row.date.isoformat() if row.date else "",
            "clicks": row.clicks,
            "unique_clicks": row.unique_clicks or 0
        }
        for row in results
    ]


def get_hourly_pattern(db: Session, filters: list) -> List[dict]:
    """Clicks per hour of day (0-23), for spotting when visitors are active"""
    hour = extract('hour', Click.clicked_at)
    results = db.query(
        hour.label('hour'),
        func.count(Click.id).label('clicks')
    ).filter(*filters).group_by(hour).order_by(hour).all()

    return [{"hour": int(row.hour), "clicks": row.clicks} for row in results]


def get_breakdown(db: Session, column, filters: list, total: int,
                  limit: int = 10, unknown: str = "Unknown") -> List[dict]:
    """Top values of one click attribute with click counts and share of the total"""
    count = func.count(Click.id)
    results = db.query(
        column.label('value'),
        count.label('clicks')
    ).filter(*filters).group_by(column).order_by(count.desc(), column).limit(limit).all()

    return [
        {
            "value": row.value or unknown,
            "clicks": row.clicks,
            "percentage": _percentage(row.clicks, total)
        }
        for row in results
    ]


def _click_to_dict(click: Click) -> dict:
    return {
        "short_code": click.short_code,
        "clicked_at": click.clicked_at.isoformat() if click.clicked_at else None,
        "device": click.device_type,
        "browser": click.browser,
        "os": click.device_os,
        "country": click.country_code,
        "city": click.city,
        "referrer": click.referer,
        "is_unique": click.is_unique
    }


def get_recent_clicks(db: Session, filters: list, limit: int = 10) -> List[dict]:
    """Most recent click events, newest first"""
    clicks = db.query(Click).filter(*filters).order_by(
        Click.clicked_at.desc(), Click.id.desc()
    ).limit(limit).all()
    return [_click_to_dict(click) for click in clicks]


def _breakdowns(db: Session, filters: list, total: int) -> dict:
    return {
        "devices": get_breakdown(db, Click.device_type, filters, total, limit=3),
        "browsers": get_breakdown(db, Click.browser, filters, total),
        "operating_systems": get_breakdown(db, Click.device_os, filters, total),
        "countries": get_breakdown(db, Click.country_code, filters, total, limit=15),
        "referrers": get_breakdown(db, Click.referer, filters, total, unknown="Direct"),
    }


def get_detailed_analytics(db: Session, owner_id: str, period: str = "30d",
                           now: Optional[datetime] = None) -> dict:
    """Analytics across all of an owner's links"""
    window = get_time_window(period, now)
    filters = _scope(owner_id, window.start, window.end)

    try:
        totals = get_totals(db, filters)
        result = {
            "period": window.period,
            "start": window.start,
            "end": window.end,
            **totals,
            "clicks_by_day": get_clicks_by_day(db, filters),
            "hourly_pattern": get_hourly_pattern(db, filters),
            **_breakdowns(db, filters, totals["total_clicks"]),
        }
    except SQLAlchemyError as e:
        raise storage_failure(db, e, "get_detailed_analytics") from e

    return result


def get_link_analytics(db: Session, owner_id: str, code: str, period: str = "7d",
                       now: Optional[datetime] = None) -> dict:
    """Get complete analytics for one owned link"""
    link = get_owned_link(db, owner_id, code)
    window = get_time_window(period, now)
    filters = _scope(owner_id, window.start, window.end, link_id=link.id)

    try:
        totals = get_totals(db, filters)
        result = {
            "short_code": link.short_code,
            "original_url": link.original_url,
            "clicks_count": link.clicks_count,
            "unique_clicks_count": link.unique_clicks_count,
            "last_clicked_at": link.last_clicked_at,
            "period": window.period,
            "start": window.start,
            "end": window.end,
            **totals,
            "unique_ratio": round(totals["unique_clicks"] / totals["total_clicks"], 2)
            if totals["total_clicks"] > 0 else 0,
            "clicks_by_day": get_clicks_by_day(db, filters),
            **_breakdowns(db, filters, totals["total_clicks"]),
            "recent_clicks": get_recent_clicks(db, filters, limit=20),
        }
    except SQLAlchemyError as e:
        raise storage_failure(db, e, "get_link_analytics") from e

    return result


def get_dashboard_stats(db: Session, owner_id: str, now: Optional[datetime] = None) -> dict:
    """Overview numbers for the dashboard landing page"""
    now = now or utcnow()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    week_ago = now - timedelta(days=7)

    try:
        counters = db.query(
            func.count(Link.id).label('links'),
            func.sum(Link.clicks_count).label('clicks'),
            func.sum(Link.unique_clicks_count).label('unique_clicks')
        ).filter(Link.owner_id == owner_id).one()

        clicks_today = db.query(func.count(Click.id)).filter(
            *_scope(owner_id, midnight, now)
        ).scalar() or 0

        clicks_this_week = db.query(func.count(Click.id)).filter(
            *_scope(owner_id, week_ago, now)
        ).scalar() or 0

        top_links = db.query(Link).filter(Link.owner_id == owner_id).order_by(
            Link.clicks_count.desc(), Link.created_at.desc()
        ).limit(5).all()

        recent_activity = get_recent_clicks(
            db, [Click.owner_id == owner_id, Click.clicked_at <= now], limit=10
        )
    except SQLAlchemyError as e:
        raise storage_failure(db, e, "get_dashboard_stats") from e

    return {
        "total_links": counters.links or 0,
        "total_clicks": counters.clicks or 0,
        "total_unique_clicks": counters.unique_clicks or 0,
        "clicks_today": clicks_today,
        "clicks_this_week": clicks_this_week,
        "top_links": [
            {
                "short_code": link.short_code,
                "original_url": link.original_url,
                "clicks_count": link.clicks_count,
                "unique_clicks_count": link.unique_clicks_count,
                "created_at": link.created_at
            }
            for link in top_links
        ],
        "recent_activity": recent_activity
    }


def get_realtime_analytics(db: Session, owner_id: str, limit: int = 20,
                           now: Optional[datetime] = None) -> dict:
    """Activity of the last 24 hours"""
    now = now or utcnow()
    day_filters = _scope(owner_id, now - timedelta(hours=24), now)

    try:
        clicks_last_hour = db.query(func.count(Click.id)).filter(
            *_scope(owner_id, now - timedelta(hours=1), now)
        ).scalar() or 0
        day_total = db.query(func.count(Click.id)).filter(*day_filters).scalar() or 0

        result = {
            "recent_clicks": get_recent_clicks(db, day_filters, limit=limit),
            "clicks_last_hour": clicks_last_hour,
            "active_countries": get_breakdown(db, Click.country_code, day_filters, day_total, limit=5),
            "last_updated": now
        }
    except SQLAlchemyError as e:
        raise storage_failure(db, e, "get_realtime_analytics") from e

    return result

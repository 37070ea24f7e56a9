from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel


class TimeSeriesPoint(BaseModel):
    """Single point in time series data"""
    timestamp: str  # ISO date
    clicks: int
    unique_clicks: int


class HourPoint(BaseModel):
    hour: int
    clicks: int


class BreakdownItem(BaseModel):
    """One row of a top-N breakdown (device, browser, country, referrer...)"""
    value: str
    clicks: int
    percentage: float


class ClickActivity(BaseModel):
    short_code: str
    clicked_at: Optional[str]
    device: str
    browser: Optional[str]
    os: Optional[str]
    country: Optional[str]
    city: Optional[str]
    referrer: Optional[str]
    is_unique: bool


class TopLink(BaseModel):
    short_code: str
    original_url: str
    clicks_count: int
    unique_clicks_count: int
    created_at: datetime


class DashboardStats(BaseModel):
    total_links: int
    total_clicks: int
    total_unique_clicks: int
    clicks_today: int
    clicks_this_week: int
    top_links: List[TopLink]
    recent_activity: List[ClickActivity]


class DetailedAnalytics(BaseModel):
    """Analytics across all of an owner's links"""
    period: str  # "1d", "24h", "7d", "30d", "90d"
    start: datetime
    end: datetime
    total_clicks: int
    unique_clicks: int
    clicks_by_day: List[TimeSeriesPoint]
    hourly_pattern: List[HourPoint]
    devices: List[BreakdownItem]
    browsers: List[BreakdownItem]
    operating_systems: List[BreakdownItem]
    countries: List[BreakdownItem]
    referrers: List[BreakdownItem]


class LinkAnalytics(BaseModel):
    """Complete analytics for a link"""
    short_code: str
    original_url: str
    clicks_count: int
    unique_clicks_count: int
    last_clicked_at: Optional[datetime]
    period: str
    start: datetime
    end: datetime
    total_clicks: int
    unique_clicks: int
    unique_ratio: float
    clicks_by_day: List[TimeSeriesPoint]
    devices: List[BreakdownItem]
    browsers: List[BreakdownItem]
    operating_systems: List[BreakdownItem]
    countries: List[BreakdownItem]
    referrers: List[BreakdownItem]
    recent_clicks: List[ClickActivity]


class RealtimeAnalytics(BaseModel):
    recent_clicks: List[ClickActivity]
    clicks_last_hour: int
    active_countries: List[BreakdownItem]
    last_updated: datetime

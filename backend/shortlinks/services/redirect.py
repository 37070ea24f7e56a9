"""
Redirect resolution and password verification.

Gate order is fixed: lookup, expiry, active flag, then password. An expired
or deactivated link therefore never reveals that it is password protected.
"""

from datetime import datetime
from typing import Optional, Union

import structlog
from sqlalchemy.orm import Session

from ..core.outcomes import (
    Deactivated,
    Expired,
    IncorrectPassword,
    InvalidOrUnprotected,
    NotFound,
    PasswordRequired,
    Redirect,
    RedirectOutcome,
    VerifyOutcome,
)
from ..core.security import verify_password as check_password
from ..models import Link
from ..utils.geo import GeoLookup
from ..utils.timeutils import utcnow
from .classifier import build_request_context
from .clicks import record_click
from .links import find_by_code

logger = structlog.get_logger()


def check_access(link: Optional[Link], short_code: str,
                 now: datetime) -> Optional[Union[NotFound, Expired, Deactivated]]:
    """First failing policy gate, or None when the link may be followed"""
    if link is None:
        return NotFound(short_code)
    if link.is_expired(now):
        return Expired(short_code)
    if not link.is_active:
        return Deactivated(short_code)
    return None


def _follow(db: Session, link: Link, user_agent: Optional[str], peer_address: Optional[str],
            forwarded_for: Optional[str], referrer: Optional[str], now: datetime,
            geo: Optional[GeoLookup]) -> Redirect:
    destination = link.original_url
    context = build_request_context(user_agent, peer_address, forwarded_for, referrer, geo)
    click = record_click(db, link, context, now)
    return Redirect(destination, click)


def resolve_redirect(
    db: Session,
    short_code: str,
    user_agent: Optional[str] = None,
    peer_address: Optional[str] = None,
    forwarded_for: Optional[str] = None,
    referrer: Optional[str] = None,
    now: Optional[datetime] = None,
    geo: Optional[GeoLookup] = None,
) -> RedirectOutcome:
    """
    Resolve a short code or alias to a redirect outcome.

    Only a Redirect outcome records a click. Storage failures propagate as
    StorageUnavailable.
    """
    now = now or utcnow()
    link = find_by_code(db, short_code)

    denied = check_access(link, short_code, now)
    if denied is not None:
        logger.info("Redirect denied", short_code=short_code, outcome=type(denied).__name__)
        return denied

    if link.has_password:
        logger.info("Redirect requires password", short_code=short_code)
        return PasswordRequired(short_code)

    outcome = _follow(db, link, user_agent, peer_address, forwarded_for, referrer, now, geo)
    logger.info("Redirect resolved", short_code=short_code)
    return outcome


def verify_password(
    db: Session,
    short_code: str,
    password: str,
    user_agent: Optional[str] = None,
    peer_address: Optional[str] = None,
    forwarded_for: Optional[str] = None,
    referrer: Optional[str] = None,
    now: Optional[datetime] = None,
    geo: Optional[GeoLookup] = None,
) -> VerifyOutcome:
    """
    Check a submitted password for a protected link.

    A correct password records the click like a direct redirect would.
    Missing, unprotected, expired and deactivated links all answer
    InvalidOrUnprotected.
    """
    now = now or utcnow()
    link = find_by_code(db, short_code)

    if check_access(link, short_code, now) is not None or not link.has_password:
        logger.info("Password check on invalid or unprotected link", short_code=short_code)
        return InvalidOrUnprotected(short_code)

    if not check_password(password, link.password_hash):
        logger.info("Incorrect link password", short_code=short_code)
        return IncorrectPassword(short_code)

    outcome = _follow(db, link, user_agent, peer_address, forwarded_for, referrer, now, geo)
    logger.info("Password verified, redirect resolved", short_code=short_code)
    return outcome

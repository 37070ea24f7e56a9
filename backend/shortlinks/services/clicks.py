"""Click recording: uniqueness verdict, event insert and counter increment."""

from datetime import datetime
from typing import Optional

import structlog
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..models import Click, Link, UniqueVisitor
from ..utils.timeutils import utcnow
from .classifier import RequestContext
from .links import increment_counters, storage_failure

logger = structlog.get_logger()

_UPSERT_DIALECTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


def claim_first_visit(db: Session, link_id: int, ip_address: str, now: datetime) -> bool:
    """
    Register (link, ip) as seen. True only for the insert that created the row.

    Backed by the unique constraint on unique_visitors, so two simultaneous
    first clicks from one address yield exactly one True.
    """
    values = dict(link_id=link_id, ip_address=ip_address, first_seen_at=now)
    insert = _UPSERT_DIALECTS.get(db.get_bind().dialect.name)

    if insert is not None:
        stmt = insert(UniqueVisitor).values(**values).on_conflict_do_nothing(
            index_elements=["link_id", "ip_address"]
        )
        return db.execute(stmt).rowcount == 1

    try:
        with db.begin_nested():
            db.add(UniqueVisitor(**values))
    except IntegrityError:
        return False
    return True


def record_click(db: Session, link: Link, context: RequestContext,
                 now: Optional[datetime] = None) -> Click:
    """
    Persist one click event for a resolved redirect and bump the link counters.

    Raises:
        StorageUnavailable: The event or the counters could not be written
    """
    now = now or utcnow()
    link_id = link.id
    short_code = link.short_code

    try:
        is_unique = claim_first_visit(db, link_id, context.client_ip, now)

        click = Click(
            link_id=link_id,
            short_code=short_code,
            owner_id=link.owner_id,
            clicked_at=now,
            ip_address=context.client_ip,
            user_agent=context.user_agent,
            referer=context.referrer,
            device_type=context.info.device,
            browser=context.info.browser,
            device_os=context.info.os,
            country_code=context.info.country,
            country_name=context.info.country_name,
            city=context.info.city,
            is_unique=is_unique,
        )
        db.add(click)
        increment_counters(db, link_id, is_unique, now)
        db.commit()
    except SQLAlchemyError as e:
        raise storage_failure(db, e, "record_click") from e

    logger.info(
        "Click recorded",
        short_code=short_code,
        is_unique=is_unique,
        device=context.info.device,
        country=context.info.country,
    )
    return click

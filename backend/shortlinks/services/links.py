"""Link store: creation with collision-retrying code allocation, lookup, counters and owner-only edits."""

from datetime import datetime
from typing import List, Optional, Tuple

import structlog
from sqlalchemy import asc, desc, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..config import settings
from ..core.errors import (
    INVALID_URL,
    CodeSpaceExhausted,
    DuplicateAlias,
    LinkNotFound,
    LinkValidationError,
    StorageUnavailable,
)
from ..core.security import PASSWORD_MAX_BYTES, get_password_hash
from ..core.shortener import (
    ALIAS_MAX_LENGTH,
    generate_short_code,
    is_code_available,
    validate_custom_alias,
)
from ..models import Link, LinkKey
from ..utils.timeutils import to_naive_utc, utcnow
from ..utils.validators import is_valid_url

logger = structlog.get_logger()

KIND_CODE = "code"
KIND_ALIAS = "alias"

SORTABLE_FIELDS = {
    "created_at": Link.created_at,
    "clicks_count": Link.clicks_count,
    "unique_clicks_count": Link.unique_clicks_count,
    "last_clicked_at": Link.last_clicked_at,
}


def storage_failure(db: Session, error: SQLAlchemyError, operation: str) -> StorageUnavailable:
    """Roll back the session and build the error to raise"""
    db.rollback()
    logger.error("Storage operation failed", operation=operation, error=str(error))
    return StorageUnavailable(f"Storage unavailable during {operation}")


def _validate_url(url: str) -> None:
    is_valid, error_msg = is_valid_url(url)
    if not is_valid:
        raise LinkValidationError(error_msg, INVALID_URL)


def _validate_alias(alias: str) -> None:
    is_valid, error_msg = validate_custom_alias(alias)
    if not is_valid:
        raise LinkValidationError(error_msg)


def _hash_password(password: Optional[str]) -> Optional[str]:
    """Hash a link password; empty or None means unprotected"""
    if not password:
        return None
    if len(password.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise LinkValidationError(f"Password must be at most {PASSWORD_MAX_BYTES} bytes")
    return get_password_hash(password)


def _insert_link(db: Session, link: Link, kind: str) -> None:
    """Insert the link and its namespace key in one transaction"""
    db.add(link)
    db.flush()
    db.add(LinkKey(key=link.short_code, link_id=link.id, kind=kind))
    db.commit()
    db.refresh(link)


def create_link(
    db: Session,
    owner_id: Optional[str],
    original_url: str,
    custom_alias: Optional[str] = None,
    password: Optional[str] = None,
    description: Optional[str] = None,
    category: Optional[str] = None,
    expires_at: Optional[datetime] = None,
    now: Optional[datetime] = None,
) -> Link:
    """
    Create a short link, either under a custom alias or a generated code.

    Args:
        db: Database session
        owner_id: Owning user, or None for an anonymous link
        original_url: Destination URL (http/https)
        custom_alias: Optional user-chosen code; bypasses the generator
        password: Optional plaintext password gating the redirect
        description: Free text shown on dashboards
        category: Free-form grouping label
        expires_at: Optional expiry; a past value creates an already expired link

    Returns:
        The persisted link

    Raises:
        LinkValidationError: Invalid URL, alias or over-long password
        DuplicateAlias: The alias already exists as a code or alias
        CodeSpaceExhausted: No free code found within the retry budget
        StorageUnavailable: Any other persistence failure
    """
    now = now or utcnow()

    _validate_url(original_url)

    fields = dict(
        original_url=original_url,
        owner_id=owner_id,
        password_hash=_hash_password(password),
        description=description,
        category=category,
        expires_at=to_naive_utc(expires_at),
        created_at=now,
        updated_at=now,
    )

    if custom_alias is not None:
        _validate_alias(custom_alias)
        link = Link(short_code=custom_alias, custom_alias=custom_alias, **fields)
        try:
            _insert_link(db, link, KIND_ALIAS)
        except IntegrityError:
            db.rollback()
            logger.info("Alias already taken", alias=custom_alias)
            raise DuplicateAlias(custom_alias)
        except SQLAlchemyError as e:
            raise storage_failure(db, e, "create_link") from e

        logger.info("Link created", short_code=link.short_code, owner_id=owner_id, custom=True)
        return link

    length = settings.SHORT_CODE_LENGTH
    max_attempts = settings.SHORT_CODE_MAX_ATTEMPTS

    for attempt in range(1, max_attempts + 1):
        code = generate_short_code(length)
        try:
            if not is_code_available(code, db):
                logger.info("Short code collision, retrying", attempt=attempt)
                continue
            link = Link(short_code=code, **fields)
            _insert_link(db, link, KIND_CODE)
        except IntegrityError:
            # Lost a race for the same code between the check and the insert
            db.rollback()
            logger.info("Short code collision on insert, retrying", attempt=attempt)
            continue
        except SQLAlchemyError as e:
            raise storage_failure(db, e, "create_link") from e

        logger.info("Link created", short_code=code, owner_id=owner_id, custom=False)
        return link

    logger.error("Short code space exhausted", attempts=max_attempts, length=length)
    raise CodeSpaceExhausted(max_attempts, length)


def find_by_code(db: Session, code: str) -> Optional[Link]:
    """Resolve a path segment that may be a generated code or a custom alias"""
    if not code or len(code) > ALIAS_MAX_LENGTH:
        return None
    try:
        return (
            db.query(Link)
            .join(LinkKey, LinkKey.link_id == Link.id)
            .filter(LinkKey.key == code)
            .first()
        )
    except SQLAlchemyError as e:
        raise storage_failure(db, e, "find_by_code") from e


def increment_counters(db: Session, link_id: int, unique: bool, clicked_at: datetime) -> None:
    """
    Bump click counters with a single UPDATE statement.

    The caller commits. Never read-modify-write counters from Python.
    """
    db.query(Link).filter(Link.id == link_id).update(
        {
            Link.clicks_count: Link.clicks_count + 1,
            Link.unique_clicks_count: Link.unique_clicks_count + (1 if unique else 0),
            Link.last_clicked_at: clicked_at,
            # Counters are not an edit; keep updated_at as is
            Link.updated_at: Link.updated_at,
        },
        synchronize_session=False,
    )


def get_owned_link(db: Session, owner_id: str, code: str) -> Link:
    """Links owned by someone else are reported exactly like missing ones"""
    link = find_by_code(db, code)
    if link is None or link.owner_id is None or link.owner_id != owner_id:
        raise LinkNotFound(code)
    return link


def list_links(
    db: Session,
    owner_id: str,
    page: int = 1,
    limit: int = 10,
    search: Optional[str] = None,
    status: Optional[str] = None,
    category: Optional[str] = None,
    sort_by: str = "created_at",
    sort_order: str = "desc",
) -> Tuple[List[Link], int]:
    """
    Get paginated links for an owner.

    Returns tuple of (links, total_count).
    """
    query = db.query(Link).filter(Link.owner_id == owner_id)

    if search:
        search_pattern = f"%{search.lower()}%"
        query = query.filter(or_(
            Link.original_url.ilike(search_pattern),
            Link.short_code.ilike(search_pattern),
            Link.custom_alias.ilike(search_pattern),
            Link.description.ilike(search_pattern),
        ))

    if status in ("active", "inactive"):
        query = query.filter(Link.is_active == (status == "active"))

    if category:
        query = query.filter(Link.category == category)

    column = SORTABLE_FIELDS.get(sort_by, Link.created_at)
    order = asc if sort_order == "asc" else desc

    try:
        total = query.count()
        links = (
            query.order_by(order(column), order(Link.id))
            .offset((page - 1) * limit)
            .limit(limit)
            .all()
        )
    except SQLAlchemyError as e:
        raise storage_failure(db, e, "list_links") from e

    return links, total


def _change_alias(db: Session, link: Link, new_alias: Optional[str]) -> None:
    """Swap the link's alias key; the short code key is never touched"""
    if new_alias == link.custom_alias:
        return

    if new_alias is not None:
        _validate_alias(new_alias)
        if new_alias != link.short_code:
            db.add(LinkKey(key=new_alias, link_id=link.id, kind=KIND_ALIAS))

    old_alias = link.custom_alias
    if old_alias is not None and old_alias != link.short_code:
        db.query(LinkKey).filter(LinkKey.key == old_alias).delete(synchronize_session=False)

    link.custom_alias = new_alias


def update_link(db: Session, owner_id: str, code: str, changes: dict) -> Link:
    """
    Apply a partial update to an owned link.

    Supported keys: original_url, description, category, custom_alias,
    is_active, expires_at, password (None removes protection).
    """
    link = get_owned_link(db, owner_id, code)
    alias_requested = "custom_alias" in changes

    try:
        if "original_url" in changes:
            _validate_url(changes["original_url"])
            link.original_url = changes["original_url"]

        for field in ("description", "category"):
            if field in changes:
                setattr(link, field, changes[field])

        if changes.get("is_active") is not None:
            link.is_active = changes["is_active"]

        if "expires_at" in changes:
            link.expires_at = to_naive_utc(changes["expires_at"])

        if "password" in changes:
            link.password_hash = _hash_password(changes["password"])

        if alias_requested:
            _change_alias(db, link, changes["custom_alias"])

        db.commit()
        db.refresh(link)
    except LinkValidationError:
        db.rollback()
        raise
    except IntegrityError:
        db.rollback()
        logger.info("Alias already taken", alias=changes.get("custom_alias"))
        raise DuplicateAlias(changes.get("custom_alias") or code)
    except SQLAlchemyError as e:
        raise storage_failure(db, e, "update_link") from e

    logger.info("Link updated", short_code=link.short_code, fields=sorted(changes))
    return link


def toggle_link_status(db: Session, owner_id: str, code: str) -> Link:
    link = get_owned_link(db, owner_id, code)
    try:
        link.is_active = not link.is_active
        db.commit()
        db.refresh(link)
    except SQLAlchemyError as e:
        raise storage_failure(db, e, "toggle_link_status") from e

    logger.info("Link status toggled", short_code=link.short_code, is_active=link.is_active)
    return link


def delete_link(db: Session, owner_id: str, code: str) -> None:
    """Delete an owned link; keys, clicks and visitor records cascade with it"""
    link = get_owned_link(db, owner_id, code)
    short_code = link.short_code
    try:
        db.delete(link)
        db.commit()
    except SQLAlchemyError as e:
        raise storage_failure(db, e, "delete_link") from e

    logger.info("Link deleted", short_code=short_code, owner_id=owner_id)

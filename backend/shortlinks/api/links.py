import math
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from ..config import settings
from ..core.rate_limit import limiter
from ..core.security import get_current_owner, get_optional_owner
from ..database import get_db
from ..models import Link
from ..schemas.link import LinkCreate, LinkListResponse, LinkResponse, LinkUpdate
from ..services import links as link_service

router = APIRouter()


def serialize_link(link: Link) -> dict:
    return {
        "id": link.id,
        "short_code": link.short_code,
        "custom_alias": link.custom_alias,
        "original_url": link.original_url,
        "short_url": f"{settings.BASE_URL}/{link.short_code}",
        "owner_id": link.owner_id,
        "description": link.description,
        "category": link.category,
        "is_active": link.is_active,
        "has_password": link.has_password,
        "expires_at": link.expires_at,
        "clicks_count": link.clicks_count,
        "unique_clicks_count": link.unique_clicks_count,
        "last_clicked_at": link.last_clicked_at,
        "created_at": link.created_at,
        "updated_at": link.updated_at
    }


@router.post("/links", response_model=LinkResponse, status_code=201)
@limiter.limit(settings.RATE_LIMIT_CREATE)
def create_short_link(
    request: Request,
    link_data: LinkCreate,
    db: Session = Depends(get_db),
    owner_id: Optional[str] = Depends(get_optional_owner)
):
    """
    Create a short link.

    Anonymous callers get an unowned link. Rate limited to prevent spam.
    """
    link = link_service.create_link(
        db,
        owner_id=owner_id,
        original_url=link_data.url,
        custom_alias=link_data.custom_alias,
        password=link_data.password,
        description=link_data.description,
        category=link_data.category,
        expires_at=link_data.expires_at
    )
    return serialize_link(link)


@router.get("/links", response_model=LinkListResponse)
def get_user_links(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    status: Optional[Literal["active", "inactive"]] = None,
    category: Optional[str] = None,
    sort_by: Literal["created_at", "clicks_count", "unique_clicks_count", "last_clicked_at"] = "created_at",
    sort_order: Literal["asc", "desc"] = "desc",
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner)
):
    """Get the caller's links with search, filters and pagination"""
    links, total = link_service.list_links(
        db, owner_id,
        page=page, limit=limit, search=search, status=status,
        category=category, sort_by=sort_by, sort_order=sort_order
    )
    return {
        "links": [serialize_link(link) for link in links],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit)
        }
    }


@router.get("/links/{code}", response_model=LinkResponse)
def get_link_details(
    code: str,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner)
):
    return serialize_link(link_service.get_owned_link(db, owner_id, code))


@router.patch("/links/{code}", response_model=LinkResponse)
def update_link(
    code: str,
    link_update: LinkUpdate,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner)
):
    """
    Update a link.

    Only the fields present in the body are changed; sending
    "password": null removes the password.
    """
    link = link_service.update_link(db, owner_id, code, link_update.model_dump(exclude_unset=True))
    return serialize_link(link)


@router.patch("/links/{code}/toggle")
def toggle_link_status(
    code: str,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner)
):
    """Toggle link active status"""
    link = link_service.toggle_link_status(db, owner_id, code)
    return {
        "message": f"Link {'activated' if link.is_active else 'deactivated'} successfully",
        "short_code": link.short_code,
        "is_active": link.is_active
    }


@router.delete("/links/{code}")
def delete_link(
    code: str,
    db: Session = Depends(get_db),
    owner_id: str = Depends(get_current_owner)
):
    """Delete a link together with its click history"""
    link_service.delete_link(db, owner_id, code)
    return {"message": "Link deleted successfully"}

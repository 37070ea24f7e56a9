from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import datetime


class LinkCreate(BaseModel):
    """Schema for creating a new short link"""
    url: str = Field(..., description="Original URL to shorten", min_length=1, max_length=2048)
    custom_alias: Optional[str] = Field(None, description="Custom alias for short code", min_length=3, max_length=30)
    password: Optional[str] = Field(None, description="Password required before redirecting", min_length=1, max_length=128)
    description: Optional[str] = Field(None, max_length=1000)
    category: Optional[str] = Field(None, max_length=100)
    expires_at: Optional[datetime] = None


class LinkUpdate(BaseModel):
    """Schema for updating a link; only fields that are sent are changed"""
    original_url: Optional[str] = Field(None, min_length=1, max_length=2048)
    custom_alias: Optional[str] = Field(None, min_length=3, max_length=30)
    password: Optional[str] = Field(None, max_length=128)
    description: Optional[str] = Field(None, max_length=1000)
    category: Optional[str] = Field(None, max_length=100)
    is_active: Optional[bool] = None
    expires_at: Optional[datetime] = None


class LinkResponse(BaseModel):
    """Schema for link response"""
    model_config = ConfigDict(from_attributes=True)

    id: int
    short_code: str
    custom_alias: Optional[str] = None
    original_url: str
    short_url: str
    owner_id: Optional[str] = None
    description: Optional[str] = None
    category: Optional[str] = None
    is_active: bool
    has_password: bool
    expires_at: Optional[datetime] = None
    clicks_count: int
    unique_clicks_count: int = 0
    last_clicked_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    pages: int


class LinkListResponse(BaseModel):
    """Schema for paginated link list"""
    links: List[LinkResponse]
    pagination: Pagination

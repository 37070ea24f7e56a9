from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.timeutils import utcnow


class Link(Base):
    """Short link model"""
    __tablename__ = "links"

    id = Column(Integer, primary_key=True, index=True)
    short_code = Column(String(30), unique=True, index=True, nullable=False)
    custom_alias = Column(String(30), unique=True, nullable=True)  # NULLs never collide
    original_url = Column(String(2048), nullable=False)
    owner_id = Column(String(64), nullable=True, index=True)  # None for anonymous links
    password_hash = Column(String(255), nullable=True)
    description = Column(Text, nullable=True)
    category = Column(String(100), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime, nullable=True)

    # Counters, only ever changed through a single UPDATE statement
    clicks_count = Column(Integer, default=0, nullable=False)
    unique_clicks_count = Column(Integer, default=0, nullable=False)
    last_clicked_at = Column(DateTime, nullable=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    keys = relationship("LinkKey", back_populates="link", cascade="all, delete-orphan")
    clicks = relationship("Click", back_populates="link", cascade="all, delete-orphan",
                          passive_deletes=True)

    @property
    def has_password(self) -> bool:
        return self.password_hash is not None

    def is_expired(self, now) -> bool:
        return self.expires_at is not None and now > self.expires_at

    def __repr__(self):
        return f"<Link {self.short_code} -> {self.original_url}>"

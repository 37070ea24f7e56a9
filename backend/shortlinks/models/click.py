from sqlalchemy import Column, Integer, String, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship

from ..database import Base
from ..utils.timeutils import utcnow


class Click(Base):
    """Click event model. Written once per resolved redirect, never updated."""
    __tablename__ = "clicks"

    id = Column(Integer, primary_key=True, index=True)
    link_id = Column(Integer, ForeignKey("links.id", ondelete="CASCADE"), nullable=False)
    short_code = Column(String(30), nullable=False)  # denormalized for range scans
    owner_id = Column(String(64), nullable=True)  # copied from the link at click time
    clicked_at = Column(DateTime, default=utcnow, nullable=False)
    ip_address = Column(String(45), nullable=True)  # IPv4 or IPv6
    user_agent = Column(String(512), nullable=True)
    referer = Column(String(512), nullable=True)

    device_type = Column(String(10), nullable=False, default="desktop")
    browser = Column(String(100), nullable=True)
    device_os = Column(String(100), nullable=True)
    country_code = Column(String(2), nullable=True)
    country_name = Column(String(100), nullable=True)
    city = Column(String(100), nullable=True)

    is_unique = Column(Boolean, default=False, nullable=False)

    link = relationship("Link", back_populates="clicks")

    __table_args__ = (
        Index("idx_clicks_code_time", "short_code", "clicked_at"),
        Index("idx_clicks_owner_time", "owner_id", "clicked_at"),
        Index("idx_clicks_ip_code", "ip_address", "short_code"),
    )

    def __repr__(self):
        return f"<Click {self.id} for link {self.link_id}>"

from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, UniqueConstraint

from ..database import Base
from ..utils.timeutils import utcnow


class UniqueVisitor(Base):
    """First-seen record per (link, client IP); the unique constraint decides click uniqueness"""
    __tablename__ = "unique_visitors"

    id = Column(Integer, primary_key=True, index=True)
    link_id = Column(Integer, ForeignKey("links.id", ondelete="CASCADE"), nullable=False)
    ip_address = Column(String(45), nullable=False)
    first_seen_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("link_id", "ip_address", name="uix_unique_visitor"),
    )

    def __repr__(self):
        return f"<UniqueVisitor {self.ip_address} for link {self.link_id}>"

from sqlalchemy import Column, Integer, String, ForeignKey
from sqlalchemy.orm import relationship

from ..database import Base


class LinkKey(Base):
    """
    Resolution namespace shared by generated short codes and custom aliases.

    The primary key on ``key`` is what makes a code or alias globally unique:
    two links can never register the same path segment, whichever column it
    lives in on the link itself.
    """
    __tablename__ = "link_keys"

    key = Column(String(30), primary_key=True)
    link_id = Column(Integer, ForeignKey("links.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(String(10), nullable=False)  # "code" or "alias"

    link = relationship("Link", back_populates="keys")

    def __repr__(self):
        return f"<LinkKey {self.key} ({self.kind}) -> {self.link_id}>"

"""
RefreshToken model: server-side record of every issued refresh token.
Fields:
- token (primary key) - the opaque value handed to the client
- user_id (String(36)) - FK to users.id
- created_at, updated_at, expires_at
- revoked_at (nullable) - set once by revoke, never cleared
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from models.base_model import Base, utcnow


class RefreshToken(Base):
    __tablename__ = "refresh_tokens"

    token = Column(String(128), primary_key=True)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow, server_default=func.now(), nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
    expires_at = Column(DateTime(timezone=True), nullable=False)
    revoked_at = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="refresh_tokens")

    __table_args__ = (Index("ix_refresh_tokens_user_id", "user_id"),)

    def __repr__(self):
        return f"<RefreshToken user_id={self.user_id} revoked={self.revoked_at is not None}>"

from sqlalchemy import Column, String, Text, ForeignKey, Index
from sqlalchemy.orm import relationship

from models.base_model import BaseModel, Base

MAX_YAP_LENGTH = 140


class Yap(BaseModel, Base):
    __tablename__ = "yaps"

    body = Column(Text, nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)

    author = relationship("User", back_populates="yaps")

    __table_args__ = (
        Index("ix_yaps_user_id", "user_id"),
        Index("ix_yaps_created_at", "created_at"),
    )

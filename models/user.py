from models.base_model import Base, BaseModel
from sqlalchemy import Boolean, Column, String, false
from sqlalchemy.orm import relationship


class User(BaseModel, Base):
    __tablename__ = "users"
    email = Column(String(255), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    is_premium = Column(Boolean, nullable=False, default=False, server_default=false())

    yaps = relationship("Yap", back_populates="author", cascade="all, delete-orphan", passive_deletes=True)
    refresh_tokens = relationship(
        "RefreshToken", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    def __repr__(self):
        return f"<User id={self.id}>"

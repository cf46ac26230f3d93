"""
User database model.

Users are created by the identity provider; the primary key is the
provider's user ID so webhook events and session claims map directly.
"""

from sqlalchemy import Column, String, Boolean, DateTime, Enum
from sqlalchemy.sql import func
from transport_backend.app.db.session import Base
from transport_backend.app.models.enums import UserRole


class User(Base):
    """
    User model mirrored from the identity provider.

    Role-specific data lives in DriverProfile / ClientProfile.
    """
    __tablename__ = "users"

    id = Column(String(64), primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=True)
    username = Column(String(100), unique=True, index=True, nullable=True)
    phone = Column(String(50), nullable=True)
    image = Column(String(500), nullable=True)

    role = Column(Enum(UserRole), default=UserRole.CLIENT, nullable=False, index=True)
    is_active = Column(Boolean, default=True, nullable=False)
    requires_password_change = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    def __repr__(self):
        return f"<User(id='{self.id}', name='{self.name}', role='{self.role.value}')>"

"""ORM model for user accounts (credentials, lockout state, role memberships)."""

from datetime import datetime

from sqlalchemy import Boolean, Column, Integer, String
from sqlalchemy.orm import relationship

from gatehouse.models.base import Base, UTCDateTime, new_id, utcnow


class User(Base):
    """
    Account used for password login and token issuance.

    Never hard-deleted: deactivation clears is_active. failed_login_attempts and
    locked_out_until are written only by the credential policy.
    """

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=new_id)
    username = Column(String(50), nullable=False, unique=True, index=True)
    email = Column(String(320), nullable=False, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    first_name = Column(String(100), nullable=False, default="")
    last_name = Column(String(100), nullable=False, default="")
    phone_number = Column(String(20), nullable=True)
    is_email_confirmed = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login_at = Column(UTCDateTime, nullable=True)
    failed_login_attempts = Column(Integer, nullable=False, default=0)
    locked_out_until = Column(UTCDateTime, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow, onupdate=utcnow)

    user_roles = relationship(
        "UserRole",
        back_populates="user",
        cascade="all, delete-orphan",
        lazy="selectin",
    )
    # save-update only: deleting an account must not take its token history with it
    refresh_tokens = relationship("RefreshToken", back_populates="user")

    def is_locked_out(self, now: datetime) -> bool:
        return self.locked_out_until is not None and self.locked_out_until > now

    def __repr__(self) -> str:
        return f"<User {self.username} active={self.is_active}>"

"""ORM model for store-backed refresh tokens and their rotation chain."""

from datetime import datetime

from sqlalchemy import Boolean, Column, ForeignKey, String
from sqlalchemy.orm import relationship

from gatehouse.models.base import Base, UTCDateTime, new_id, utcnow

# IPv6 textual max length
IP_ADDRESS_MAX_LEN = 45


class RefreshToken(Base):
    """
    Opaque refresh token owned by a user.

    Revoked tokens are kept (audit trail); replaced_by_token links a rotated token
    to its successor. Only the retention sweep deletes rows.
    """

    __tablename__ = "refresh_tokens"

    id = Column(String(36), primary_key=True, default=new_id)
    token = Column(String(128), nullable=False, unique=True, index=True)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    expires_at = Column(UTCDateTime, nullable=False, index=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    created_by_ip = Column(String(IP_ADDRESS_MAX_LEN), nullable=False, default="unknown")
    is_revoked = Column(Boolean, nullable=False, default=False)
    revoked_at = Column(UTCDateTime, nullable=True)
    revoked_by_ip = Column(String(IP_ADDRESS_MAX_LEN), nullable=True)
    replaced_by_token = Column(String(128), nullable=True)
    is_deleted = Column(Boolean, nullable=False, default=False)

    user = relationship("User", back_populates="refresh_tokens")

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at

    def is_active(self, now: datetime) -> bool:
        return not self.is_deleted and not self.is_revoked and not self.is_expired(now)

    def __repr__(self) -> str:
        return f"<RefreshToken {self.token[:8]}... user={self.user_id} revoked={self.is_revoked}>"

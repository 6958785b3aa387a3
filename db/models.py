"""
SQLAlchemy models for the profile and subscription collaborators.
Defines User and VipSubscription models. This service only reads them.
"""
from datetime import datetime
from sqlalchemy import Column, Integer, String, Boolean, DateTime, Index
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class User(Base):
    """User profile as seen by matchmaking."""
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(String(64), unique=True, index=True, nullable=False)
    username = Column(String(255), nullable=True)

    # Profile information
    gender = Column(String(20), nullable=True)  # 'male', 'female', 'other'
    age = Column(Integer, nullable=True)

    # VIP matching preference: 'male', 'female' or 'any'
    vip_gender = Column(String(20), nullable=True)

    # Account status
    is_banned = Column(Boolean, default=False, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_is_banned', 'is_banned'),
    )

    def __repr__(self):
        return f"<User(id={self.id}, chat_id={self.chat_id}, gender={self.gender})>"


class VipSubscription(Base):
    """Current VIP subscription per participant (one row, extended on renewal)."""
    __tablename__ = "vip_subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    chat_id = Column(String(64), unique=True, nullable=False)
    expires_at = Column(DateTime, nullable=False)
    source = Column(String(50), nullable=True)  # 'stars', 'referral', 'admin', ...

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_vip_chat_id', 'chat_id'),
        Index('idx_vip_expires_at', 'expires_at'),
    )

    def __repr__(self):
        return f"<VipSubscription(chat_id={self.chat_id}, expires_at={self.expires_at})>"

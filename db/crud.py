"""
Read operations used by matchmaking.
Provides lookups for User and VipSubscription models.
"""
from datetime import datetime
from typing import Optional
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select

from db.models import User, VipSubscription


# ============= User CRUD =============

async def get_user_by_chat_id(session: AsyncSession, chat_id: str, include_inactive: bool = False) -> Optional[User]:
    """
    Get user by chat ID.

    Args:
        session: Database session
        chat_id: Chat/session identifier used as participant id
        include_inactive: If True, include inactive (deleted) users. Default is False.

    Returns:
        User object or None
    """
    query = select(User).where(User.chat_id == str(chat_id))
    if not include_inactive:
        query = query.where(User.is_active == True)  # noqa: E712
    result = await session.execute(query)
    return result.scalar_one_or_none()


# ============= VipSubscription CRUD =============

async def get_vip_subscription(session: AsyncSession, chat_id: str) -> Optional[VipSubscription]:
    """Get the VIP subscription row for a participant, active or not."""
    result = await session.execute(
        select(VipSubscription).where(VipSubscription.chat_id == str(chat_id))
    )
    return result.scalar_one_or_none()


async def get_active_vip_expiry(session: AsyncSession, chat_id: str) -> Optional[datetime]:
    """Return the subscription expiry if it is still in the future, else None."""
    subscription = await get_vip_subscription(session, chat_id)
    if subscription and subscription.expires_at > datetime.utcnow():
        return subscription.expires_at
    return None

"""Business user lookup and chat-identity to tenant resolution."""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

import structlog
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from equiledger.config import get_settings
from equiledger.db.models import Business, BusinessUser, SubscriptionTier, UserRole

logger = structlog.get_logger(__name__)

Channel = Literal["whatsapp", "telegram"]

_CHANNEL_COLUMNS = {
    "whatsapp": BusinessUser.whatsapp_number,
    "telegram": BusinessUser.telegram_id,
}


@dataclass
class ResolvedTenant:
    """Outcome of mapping a chat identity to a business."""

    business_id: str
    user_id: str
    business_name: str
    created: bool = False


def get_user_by_whatsapp(
    session: Session, whatsapp_number: str, business_id: str
) -> BusinessUser | None:
    return session.scalars(
        select(BusinessUser).where(
            BusinessUser.business_id == business_id,
            BusinessUser.whatsapp_number == whatsapp_number,
            BusinessUser.is_active.is_(True),
        )
    ).first()


def get_user_by_telegram(
    session: Session, telegram_id: str, business_id: str
) -> BusinessUser | None:
    return session.scalars(
        select(BusinessUser).where(
            BusinessUser.business_id == business_id,
            BusinessUser.telegram_id == telegram_id,
            BusinessUser.is_active.is_(True),
        )
    ).first()


def channel_address(
    session: Session, business_id: str, user_id: str, channel: Channel
) -> str | None:
    """The WhatsApp number or Telegram id of an active user, for outbound messages."""
    column = _CHANNEL_COLUMNS.get(channel)
    if column is None:
        return None
    return session.scalar(
        select(column).where(
            BusinessUser.id == user_id,
            BusinessUser.business_id == business_id,
            BusinessUser.is_active.is_(True),
        )
    )


def get_or_create_business_user(
    session: Session,
    business_id: str,
    *,
    whatsapp_number: str | None = None,
    telegram_id: str | None = None,
    email: str | None = None,
    name: str | None = None,
) -> BusinessUser:
    """Find a user in the business by any supplied identifier, else create one.

    Only identifiers that were actually supplied take part in the match.
    Supplied fields overwrite the stored ones on an existing user.
    """
    fields = {
        "whatsapp_number": whatsapp_number,
        "telegram_id": telegram_id,
        "email": email,
        "name": name,
    }
    supplied = {key: value for key, value in fields.items() if value is not None}

    identifiers = [
        getattr(BusinessUser, key) == value
        for key, value in supplied.items()
        if key != "name"
    ]

    user = None
    if identifiers:
        user = session.scalars(
            select(BusinessUser).where(
                BusinessUser.business_id == business_id,
                or_(*identifiers),
            )
        ).first()

    if user is not None:
        for key, value in supplied.items():
            setattr(user, key, value)
        user.updated_at = datetime.now(timezone.utc)
        session.flush()
        logger.debug("business_user_updated", user_id=user.id, business_id=business_id)
        return user

    user = BusinessUser(business_id=business_id, **supplied)
    session.add(user)
    session.flush()
    logger.info("business_user_created", user_id=user.id, business_id=business_id)
    return user


def resolve_business_for_identity(
    session: Session, channel: Channel, identity: str
) -> ResolvedTenant:
    """Map a WhatsApp number or Telegram id to its business.

    First contact from an unknown identity creates a new business with the
    sender as its owner.
    """
    column = _CHANNEL_COLUMNS.get(channel)
    if column is None:
        raise ValueError(f"Unsupported channel: {channel}")

    user = session.scalars(
        select(BusinessUser).where(column == identity, BusinessUser.is_active.is_(True))
    ).first()

    if user is not None:
        return ResolvedTenant(
            business_id=user.business_id,
            user_id=user.id,
            business_name=user.business.name,
        )

    settings = get_settings()
    business = Business(
        name="New Business",
        subscription_tier=SubscriptionTier.FREE,
        currency=settings.default_currency,
        vat_rate=settings.default_vat_rate,
    )
    session.add(business)
    session.flush()

    owner = BusinessUser(
        business_id=business.id,
        role=UserRole.OWNER,
        name="Business Owner",
        **{column.key: identity},
    )
    session.add(owner)
    session.flush()

    logger.info(
        "business_auto_created",
        channel=channel,
        business_id=business.id,
        user_id=owner.id,
    )
    return ResolvedTenant(
        business_id=business.id,
        user_id=owner.id,
        business_name=business.name,
        created=True,
    )

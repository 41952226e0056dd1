"""Database layer: models, sessions and tenant context."""

from equiledger.db.context import (
    BusinessContext,
    BusinessContextError,
    business_context,
    get_business_context,
    reset_business_context,
    safe_db_operation,
    set_business_context,
    verify_business_context,
    with_business_context,
)
from equiledger.db.models import (
    Base,
    Business,
    BusinessUser,
    Client,
    Expense,
    Invoice,
    InvoiceItem,
    InvoiceStatus,
    Payment,
    SubscriptionTier,
    UserRole,
)
from equiledger.db.session import (
    SessionFactory,
    get_engine,
    get_session,
    get_sessionmaker,
    init_db,
    init_engine,
    session_scope,
)
from equiledger.db.users import (
    ResolvedTenant,
    channel_address,
    get_or_create_business_user,
    get_user_by_telegram,
    get_user_by_whatsapp,
    resolve_business_for_identity,
)

__all__ = [
    # Context
    "BusinessContext",
    "BusinessContextError",
    "business_context",
    "get_business_context",
    "set_business_context",
    "reset_business_context",
    "safe_db_operation",
    "verify_business_context",
    "with_business_context",
    # Models
    "Base",
    "Business",
    "BusinessUser",
    "Client",
    "Expense",
    "Invoice",
    "InvoiceItem",
    "InvoiceStatus",
    "Payment",
    "SubscriptionTier",
    "UserRole",
    # Sessions
    "SessionFactory",
    "get_engine",
    "get_session",
    "get_sessionmaker",
    "init_db",
    "init_engine",
    "session_scope",
    # Users
    "ResolvedTenant",
    "channel_address",
    "get_or_create_business_user",
    "get_user_by_telegram",
    "get_user_by_whatsapp",
    "resolve_business_for_identity",
]

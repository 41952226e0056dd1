"""Request dependencies shared by the API routers."""

from collections.abc import Iterator
from contextlib import contextmanager

from fastapi import Header, HTTPException, Query, Request
from sqlalchemy.orm import Session

from equiledger.db.context import business_context, verify_business_context
from equiledger.db.session import SessionFactory, session_scope


def get_business_id(
    business_id: str | None = Query(default=None, alias="businessId"),
    x_business_id: str | None = Header(default=None),
) -> str:
    """Business id from ``?businessId=`` or the ``X-Business-Id`` header."""
    resolved = business_id or x_business_id
    if not resolved:
        raise HTTPException(status_code=400, detail="Business ID required")
    return resolved


def get_session_factory(request: Request) -> SessionFactory:
    return request.app.state.session_factory


@contextmanager
def tenant_scope(business_id: str) -> Iterator[None]:
    """Run the block inside ``business_id``'s context."""
    with business_context(business_id):
        verify_business_context(business_id)
        yield


@contextmanager
def tenant_session(business_id: str, factory: SessionFactory) -> Iterator[Session]:
    """A session inside ``business_id``'s context, committed when the block exits."""
    with tenant_scope(business_id), session_scope(factory) as session:
        yield session

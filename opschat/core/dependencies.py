"""
FastAPI dependencies for route protection.
"""
from fastapi import Request, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from opschat.core.context import OperatorContext, OperatorRole
from opschat.core.exceptions import NotAuthenticated, SessionExpired
from typing import Dict, Any, Optional
import uuid

# Security scheme for OpenAPI docs (shows lock icon and Authorization header)
bearer_scheme = HTTPBearer(
    scheme_name="Bearer",
    description="Session token issued by the identity service",
    auto_error=False,
)


async def validate_session(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Dict[str, Any]:
    """
    Validates session loaded by middleware.

    Returns:
        Session dict with operator_id, username, email, role

    Raises:
        NotAuthenticated: No token provided
        SessionExpired: Token not found in Redis
    """
    if not request.state.token:
        raise NotAuthenticated()

    if not request.state.session:
        raise SessionExpired()

    return request.state.session


async def get_operator_context(
    session: Dict[str, Any] = Depends(validate_session),
) -> OperatorContext:
    """Resolve (operator_id, role) for this request. Role names are normalized here only."""
    try:
        operator_id = uuid.UUID(str(session["operator_id"]))
    except (KeyError, ValueError):
        raise SessionExpired()
    return OperatorContext(
        operator_id=operator_id,
        role=OperatorRole.from_role_name(session.get("role")),
    )

"""
Session middleware: resolves the bearer token to an operator session once per request.
"""
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response
from typing import Callable
import logging
from opschat.session import extract_token, get_session

logger = logging.getLogger(__name__)

# No session lookup (and no Redis round trip) for these
PUBLIC_PATHS = ("/health", "/docs", "/redoc", "/openapi.json")


class SessionMiddleware(BaseHTTPMiddleware):
    """
    Puts ``token`` and ``session`` on ``request.state``.

    A token that is present but unknown leaves ``session`` empty so the
    dependency layer can tell "no token" (401 NOT_AUTHENTICATED) from "stale
    token" (401 SESSION_EXPIRED).
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request.state.session = {}
        request.state.token = None

        if not request.url.path.startswith(PUBLIC_PATHS):
            token = extract_token(request.headers.get("authorization"))
            if token:
                request.state.token = token
                session = get_session(token)
                if session:
                    request.state.session = session
                else:
                    logger.debug(f"No session for token on {request.url.path}")

        return await call_next(request)

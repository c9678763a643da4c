"""
Operator sessions in Redis.

The identity service writes ``session:<token>`` -> JSON ``{operator_id, username,
email, role}``. The chat service reads it on every request; create_session writes
the same shape for tooling and tests that need to mint a token.
"""
from typing import Optional, Dict, Any
import logging
import json
import redis

logger = logging.getLogger(__name__)

SESSION_KEY_PREFIX = "session:"

_redis_pool: Optional[redis.ConnectionPool] = None
_redis_client: Optional[redis.Redis] = None
_session_ttl: int = 86400


def init_redis(host: str, port: int, db: int, session_ttl: int = 86400, max_connections: int = 10) -> None:
    """Initialize Redis connection pool. Call once at app startup."""
    global _redis_pool, _redis_client, _session_ttl
    _redis_pool = redis.ConnectionPool(
        host=host,
        port=port,
        db=db,
        decode_responses=True,
        max_connections=max_connections,
    )
    _redis_client = redis.Redis(connection_pool=_redis_pool)
    _session_ttl = session_ttl
    logger.info(f"Redis initialized: {host}:{port}/{db}, TTL: {session_ttl}s")


def _get_redis_client() -> redis.Redis:
    if _redis_client is None:
        raise RuntimeError("Redis not initialized. Call init_redis() first.")
    return _redis_client


def session_key(token: str) -> str:
    return f"{SESSION_KEY_PREFIX}{token}"


def create_session(token: str, operator_data: Dict[str, Any]) -> None:
    """Store an operator payload under the token with the configured TTL."""
    if not operator_data.get("operator_id"):
        raise ValueError("Session payload needs an operator_id.")
    _get_redis_client().setex(
        session_key(token), _session_ttl, json.dumps(operator_data, default=str)
    )
    logger.info(f"Session created for operator {operator_data['operator_id']}")


def get_session(token: str) -> Optional[Dict[str, Any]]:
    """
    Operator payload for a token, or None.

    Unreadable entries and payloads without an operator_id are treated as no
    session; the caller then answers 401.
    """
    raw = _get_redis_client().get(session_key(token))
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring unreadable session payload")
        return None
    if not isinstance(data, dict) or not data.get("operator_id"):
        logger.warning("Ignoring session payload without operator_id")
        return None
    return data


def extract_token(auth_header: Optional[str]) -> Optional[str]:
    """Bearer token from an Authorization header value."""
    if not auth_header:
        return None
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token or " " in token:
        return None
    return token

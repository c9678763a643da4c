from .session_layer import (
    init_redis,
    create_session,
    get_session,
    extract_token,
)

__all__ = [
    "init_redis",
    "create_session",
    "get_session",
    "extract_token",
]

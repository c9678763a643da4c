"""
AWS integrations layer.
"""
from opschat.aws.secrets import get_secret

__all__ = [
    "get_secret",
]

"""Database models."""

from callgate.models.account import Account, ApiKey
from callgate.models.call import CallRecord

__all__ = ["Account", "ApiKey", "CallRecord"]

"""Account storage."""

from scalpbot.storage.account_repo import (
    AccountRepository,
    InMemoryAccountRepository,
    JsonFileAccountRepository,
)

__all__ = [
    "AccountRepository",
    "InMemoryAccountRepository",
    "JsonFileAccountRepository",
]

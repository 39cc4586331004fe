"""Account persistence.

The position manager never touches storage directly: the engine saves
the account after each tick and the CLI loads it on startup.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Protocol

import orjson
from pydantic import ValidationError

from scalpcore.models import Account

logger = logging.getLogger(__name__)


class AccountRepository(Protocol):
    """Load/save a snapshot of one account."""

    async def load(self) -> Account | None: ...

    async def save(self, account: Account) -> None: ...


def dump_account(account: Account) -> bytes:
    return orjson.dumps(account.model_dump(mode="json"), option=orjson.OPT_INDENT_2)


def parse_account(data: bytes) -> Account:
    return Account.model_validate(orjson.loads(data))


class InMemoryAccountRepository:
    """Keeps the last saved account as serialized bytes.

    Serializing on save means later mutations of the live account do not
    leak into the stored copy.
    """

    def __init__(self, account: Account | None = None):
        self._data: bytes | None = dump_account(account) if account is not None else None
        self.saves = 0

    async def load(self) -> Account | None:
        if self._data is None:
            return None
        return parse_account(self._data)

    async def save(self, account: Account) -> None:
        self._data = dump_account(account)
        self.saves += 1


class JsonFileAccountRepository:
    """Account stored as a JSON file, replaced atomically on every save."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    async def load(self) -> Account | None:
        """Load the saved account.

        Returns None if there is no file or it cannot be parsed.
        """
        if not self.path.exists():
            return None
        data = await asyncio.to_thread(self.path.read_bytes)
        try:
            account = parse_account(data)
        except (orjson.JSONDecodeError, ValidationError) as e:
            logger.warning("Ignoring unreadable account file %s: %s", self.path, e)
            return None
        logger.info("Loaded account from %s (%d trades)", self.path, len(account.trades))
        return account

    async def save(self, account: Account) -> None:
        await asyncio.to_thread(self._write, dump_account(account))

    def _write(self, data: bytes) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self.path.with_name(self.path.name + ".tmp")
        tmp.write_bytes(data)
        os.replace(tmp, self.path)

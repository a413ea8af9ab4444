"""Address display names: the persistent directory and a tolerant resolver."""

from __future__ import annotations

import asyncio
from typing import Optional, Protocol, Tuple

from blockmon.store.db import Database
from blockmon.store.repository import Repository
from blockmon.utils.logging import get_logger

logger = get_logger(__name__)

NAME_KEY_PREFIX = "blockmon"


def normalize_address(address: str) -> str:
    """Ensure address is lowercase and stripped."""
    return address.strip().lower()


def name_key(address: str) -> str:
    return f"{NAME_KEY_PREFIX}:{normalize_address(address)}:name"


class NameLookup(Protocol):
    async def get(self, address: str) -> Optional[str]: ...


class NameDirectory:
    """Address -> display name records stored in the settings table."""

    def __init__(self, db: Database) -> None:
        self.db = db

    async def get(self, address: str) -> Optional[str]:
        async with self.db.session() as session:
            return await Repository(session).get_setting(name_key(address))

    async def set(self, address: str, name: str) -> None:
        async with self.db.session() as session:
            await Repository(session).set_setting(name_key(address), name)

    async def delete(self, address: str) -> bool:
        async with self.db.session() as session:
            return await Repository(session).delete_setting(name_key(address))


class NameResolver:
    """Best-effort name lookup; failures degrade to "no name"."""

    def __init__(self, directory: NameLookup) -> None:
        self.directory = directory

    async def resolve(self, address: Optional[str]) -> Optional[str]:
        if not address:
            return None
        try:
            name = await self.directory.get(normalize_address(address))
        except Exception as exc:
            logger.warning("name_lookup_failed", address=address, error=str(exc))
            return None
        return name or None

    async def resolve_pair(
        self, from_address: Optional[str], to_address: Optional[str]
    ) -> Tuple[Optional[str], Optional[str]]:
        from_name, to_name = await asyncio.gather(
            self.resolve(from_address), self.resolve(to_address)
        )
        return from_name, to_name

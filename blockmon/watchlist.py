"""Operator-facing management of watched addresses and their names."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import AsyncIterator, List, Optional, Protocol

from web3 import Web3

from blockmon.names import NameDirectory, NameResolver
from blockmon.utils.logging import get_logger

logger = get_logger(__name__)


class AddressStream(Protocol):
    async def add_address(self, address: str) -> None: ...

    async def remove_address(self, address: str) -> None: ...

    def iter_addresses(self) -> AsyncIterator[str]: ...


class InvalidAddressError(ValueError):
    pass


@dataclass(frozen=True)
class WatchedAddress:
    address: str
    name: Optional[str] = None


def is_evm_address(value: Optional[str]) -> bool:
    return bool(value) and Web3.is_address(value)


def checksum(address: str) -> str:
    """EIP-55 form for EVM addresses; anything else is returned as-is."""
    if Web3.is_address(address):
        return Web3.to_checksum_address(address)
    return address


class WatchlistManager:
    """Add, rename, remove and list addresses watched by the event stream."""

    def __init__(self, stream: AddressStream, directory: NameDirectory) -> None:
        self.stream = stream
        self.directory = directory
        self.resolver = NameResolver(directory)

    @staticmethod
    def _validate(address: str) -> str:
        address = (address or "").strip()
        if not is_evm_address(address):
            raise InvalidAddressError(f"Not an EVM address: {address!r}")
        return address

    async def add(self, address: str, name: Optional[str] = None) -> None:
        address = self._validate(address)
        await self.stream.add_address(address)
        if name:
            await self.directory.set(address, name)
        logger.info("watchlist_address_added", address=address, name=name)

    async def rename(self, address: str, name: str) -> None:
        address = self._validate(address)
        await self.directory.set(address, name)
        logger.info("watchlist_address_renamed", address=address, name=name)

    async def remove(self, address: str) -> None:
        # stored name is kept
        address = self._validate(address)
        await self.stream.remove_address(address)
        logger.info("watchlist_address_removed", address=address)

    async def list(self) -> List[WatchedAddress]:
        addresses = [addr async for addr in self.stream.iter_addresses() if addr]
        names = await asyncio.gather(*(self.resolver.resolve(a) for a in addresses))
        return [
            WatchedAddress(address=checksum(address), name=name)
            for address, name in zip(addresses, names)
        ]

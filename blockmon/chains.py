"""Static registry of supported chains and their explorers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Mapping, Optional
from urllib.parse import urljoin

# Solana has no EVM chain id; 101 is the mainnet-beta id used by the
# Solana token list.
SOLANA_CHAIN_ID = 101


class RejectedTransactionError(ValueError):
    """A transaction record that cannot be processed and must be skipped."""


class UnsupportedChainError(RejectedTransactionError):
    def __init__(self, chain_id: object) -> None:
        super().__init__(f"Unsupported chain id: {chain_id!r}")
        self.chain_id = chain_id


@dataclass(frozen=True)
class ChainInfo:
    """Metadata describing a supported chain."""

    chain_id: int
    name: str
    native_currency: str
    decimals: int
    explorer_base: str
    address_path: str = "address/{}"
    tx_path: str = "tx/{}"

    @property
    def value_scale(self) -> int:
        """Number of smallest units in one native coin."""
        return 10**self.decimals

    def address_url(self, address: str) -> str:
        return urljoin(self.explorer_base, self.address_path.format(address))

    def tx_url(self, tx_hash: str) -> str:
        return urljoin(self.explorer_base, self.tx_path.format(tx_hash))


DEFAULT_CHAINS: Mapping[int, ChainInfo] = {
    info.chain_id: info
    for info in (
        ChainInfo(1, "Ethereum", "ETH", 18, "https://etherscan.io/"),
        ChainInfo(10, "Optimism", "ETH", 18, "https://optimistic.etherscan.io/"),
        ChainInfo(56, "BNB Chain", "BNB", 18, "https://bscscan.com/"),
        ChainInfo(137, "Polygon", "MATIC", 18, "https://polygonscan.com/"),
        ChainInfo(250, "Fantom", "FTM", 18, "https://ftmscan.com/"),
        ChainInfo(8453, "Base", "ETH", 18, "https://basescan.org/"),
        ChainInfo(42161, "Arbitrum", "ETH", 18, "https://arbiscan.io/"),
        ChainInfo(43114, "Avalanche", "AVAX", 18, "https://snowtrace.io/"),
        ChainInfo(
            SOLANA_CHAIN_ID,
            "Solana",
            "SOL",
            9,
            "https://solscan.io/",
            address_path="account/{}",
        ),
    )
}


def lookup_chain(
    chain_id: int, chains: Optional[Mapping[int, ChainInfo]] = None
) -> Optional[ChainInfo]:
    """Return chain metadata or None when the id is not registered."""
    registry = DEFAULT_CHAINS if chains is None else chains
    return registry.get(chain_id)


def require_chain(
    chain_id: int, chains: Optional[Mapping[int, ChainInfo]] = None
) -> ChainInfo:
    """Return chain metadata, raising UnsupportedChainError when missing."""
    info = lookup_chain(chain_id, chains)
    if info is None:
        raise UnsupportedChainError(chain_id)
    return info


def parse_chain_id(value: object) -> int:
    """Convert `0x1`, `"1"` or `1` into an integer chain id."""
    if isinstance(value, bool):
        raise ValueError(f"Invalid chain id: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip().lower()
        if text.startswith("0x"):
            return int(text, 16)
        return int(text)
    raise ValueError(f"Invalid chain id: {value!r}")


__all__: List[str] = [
    "ChainInfo",
    "DEFAULT_CHAINS",
    "RejectedTransactionError",
    "SOLANA_CHAIN_ID",
    "UnsupportedChainError",
    "lookup_chain",
    "parse_chain_id",
    "require_chain",
]

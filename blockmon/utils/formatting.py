"""Helpers for Telegram-safe MarkdownV2 transaction messages."""

from __future__ import annotations

from typing import List, Optional

from blockmon.chains import ChainInfo
from blockmon.utils.tx_parser import NormalizedTransaction

PENDING_GLYPH = "🟡"
CONFIRMED_GLYPH = "🟢"
ELLIPSIS = "…"
TRUNCATE_HEAD = 6
TRUNCATE_TAIL = 4
VALUE_DECIMALS = 6
UNKNOWN_ADDRESS_LABEL = "unknown"

MARKDOWN_SPECIAL_CHARS = r"_*[]()~`>#+-=|{}.!\\"


def escape_markdown(text: str) -> str:
    """Escape Telegram MarkdownV2 control characters."""
    if text is None:
        text = ""
    if not isinstance(text, str):
        text = str(text)
    return "".join(
        f"\\{char}" if char in MARKDOWN_SPECIAL_CHARS else char for char in text
    )


def escape_markdown_url(url: str) -> str:
    """Escape Telegram MarkdownV2-sensitive characters inside link URLs."""
    if not url:
        return ""
    return url.replace("\\", "\\\\").replace(")", "\\)")


FALLBACK_MESSAGE = escape_markdown(
    "could not process incoming tx, contact dev for more details"
)


def truncate_middle(
    value: str, head: int = TRUNCATE_HEAD, tail: int = TRUNCATE_TAIL
) -> str:
    """Shorten long identifiers to `head…tail`, leaving short ones intact."""
    if value is None:
        return ""
    if len(value) <= head + tail + len(ELLIPSIS):
        return value
    return f"{value[:head]}{ELLIPSIS}{value[-tail:]}"


def format_native_value(
    value: str, decimals: int, places: int = VALUE_DECIMALS
) -> str:
    """Scale a smallest-unit integer to coins with `places` decimals.

    Digits beyond `places` are truncated, not rounded, so amounts below
    10**-places show as zero.
    """
    amount = int(value)
    sign = "-" if amount < 0 else ""
    whole, fraction = divmod(abs(amount), 10**decimals)
    digits = str(fraction).zfill(decimals) if decimals else ""
    digits = (digits + "0" * places)[:places]
    if not places:
        return f"{sign}{whole}"
    return f"{sign}{whole}.{digits}"


def format_address_link(
    address: Optional[str], name: Optional[str], chain: ChainInfo
) -> str:
    """Render a linked label for an address, preferring its display name."""
    if not address:
        return escape_markdown(name or UNKNOWN_ADDRESS_LABEL)
    label = name or truncate_middle(address)
    url = escape_markdown_url(chain.address_url(address))
    return f"[{escape_markdown(label)}]({url})"


def format_parties(
    tx: NormalizedTransaction,
    chain: ChainInfo,
    from_name: Optional[str],
    to_name: Optional[str],
) -> str:
    """Render the sender/recipient line.

    A known sender leads (`from -> to`); otherwise the recipient leads
    (`to <- from`).
    """
    from_mark = format_address_link(tx.from_address, from_name, chain)
    to_mark = format_address_link(tx.to_address, to_name, chain)
    if from_name:
        return f"{from_mark} {escape_markdown('->')} {to_mark}"
    return f"{to_mark} {escape_markdown('<-')} {from_mark}"


def render_transaction(
    tx: NormalizedTransaction,
    chain: ChainInfo,
    from_name: Optional[str] = None,
    to_name: Optional[str] = None,
) -> str:
    """Render a transaction notification as MarkdownV2 text."""
    status = CONFIRMED_GLYPH if tx.confirmed else PENDING_GLYPH
    hash_url = escape_markdown_url(chain.tx_url(tx.hash))
    hash_mark = f"[{escape_markdown(truncate_middle(tx.hash))}]({hash_url})"

    amount = escape_markdown(format_native_value(tx.value, chain.decimals))
    currency = escape_markdown(chain.native_currency)
    chain_mark = escape_markdown(f"({chain.name})")

    return "\n".join(
        [
            f"*New Transaction* {hash_mark} {status}",
            "",
            format_parties(tx, chain, from_name, to_name),
            "",
            f"{amount} {currency} {chain_mark}",
        ]
    )


def format_address_list(entries: List[tuple[str, Optional[str]]]) -> str:
    """Plain-text listing of watched addresses for operator replies."""
    if not entries:
        return "No active addresses found"
    lines = [f"{name}: {address}" if name else address for address, name in entries]
    return "Active addresses:\n" + "\n".join(lines)

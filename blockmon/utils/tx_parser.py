"""Normalize raw chain-event payloads into NormalizedTransaction records."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from blockmon.chains import SOLANA_CHAIN_ID, RejectedTransactionError, parse_chain_id

SYSTEM_PROGRAM_ID = "11111111111111111111111111111111"
SYSTEM_TRANSFER_TYPES = {"transfer", "transferWithSeed"}


class MalformedTransactionError(RejectedTransactionError):
    """Raised when a raw record lacks the fields a notification needs."""


@dataclass(frozen=True)
class NormalizedTransaction:
    """Canonical chain-agnostic transaction record."""

    hash: str
    chain_id: int
    from_address: Optional[str]
    to_address: Optional[str]
    value: str
    confirmed: bool
    block_number: Optional[int] = None
    block_timestamp: Optional[int] = None


@dataclass(frozen=True)
class RawRecord:
    """One transaction entry together with the batch-level fields it inherits."""

    record: Mapping[str, Any]
    chain_id: Any = None
    confirmed: Any = None
    block: Mapping[str, Any] = field(default_factory=dict)
    kind: str = "tx"


def split_webhook_batch(payload: Any) -> List[RawRecord]:
    """Flatten a Moralis Streams payload into per-transaction raw records.

    The payload may be a single batch or a list of batches. Both `txs` and
    `txsInternal` are included; internal transactions share the hash of the
    parent transaction.
    """
    if isinstance(payload, list):
        records: List[RawRecord] = []
        for batch in payload:
            records.extend(split_webhook_batch(batch))
        return records

    if not isinstance(payload, Mapping):
        raise MalformedTransactionError(
            f"Webhook payload must be an object, got {type(payload).__name__}"
        )

    chain_id = payload.get("chainId")
    confirmed = payload.get("confirmed")
    block = payload.get("block") if isinstance(payload.get("block"), Mapping) else {}

    records = []
    for kind, key in (("tx", "txs"), ("internal", "txsInternal")):
        for entry in _as_list(payload.get(key)):
            records.append(
                RawRecord(
                    record=entry if isinstance(entry, Mapping) else {},
                    chain_id=chain_id,
                    confirmed=confirmed,
                    block=block,
                    kind=kind,
                )
            )
    return records


def normalize_record(raw: RawRecord) -> NormalizedTransaction:
    """Convert one raw webhook record into a NormalizedTransaction."""
    record = raw.record
    if not record:
        raise MalformedTransactionError("Transaction record is empty")

    tx_hash = _first_text(record, "hash", "transactionHash")
    if not tx_hash:
        raise MalformedTransactionError("Transaction record has no hash")

    chain_value = record.get("chainId", raw.chain_id)
    try:
        chain_id = parse_chain_id(chain_value)
    except ValueError as exc:
        raise MalformedTransactionError(str(exc)) from exc

    from_address = _first_text(record, "from", "fromAddress")
    to_address = _first_text(record, "to", "toAddress")
    if not from_address and not to_address:
        raise MalformedTransactionError(f"Transaction {tx_hash} has no addresses")

    confirmed = record.get("confirmed", raw.confirmed)

    return NormalizedTransaction(
        hash=tx_hash,
        chain_id=chain_id,
        from_address=from_address,
        to_address=to_address,
        value=parse_value(record.get("value")),
        confirmed=bool(confirmed),
        block_number=_optional_int(
            record.get("blockNumber", raw.block.get("number"))
        ),
        block_timestamp=_optional_int(
            record.get("blockTimestamp", raw.block.get("timestamp"))
        ),
    )


def parse_value(value: Any) -> str:
    """Return the smallest-unit amount as a canonical decimal integer string."""
    if value is None or value == "":
        return "0"
    if isinstance(value, bool):
        raise MalformedTransactionError(f"Invalid transaction value: {value!r}")
    try:
        if isinstance(value, int):
            amount = value
        elif isinstance(value, str):
            text = value.strip()
            amount = int(text, 16) if text.lower().startswith("0x") else int(text)
        else:
            raise TypeError(type(value).__name__)
    except (TypeError, ValueError) as exc:
        raise MalformedTransactionError(
            f"Invalid transaction value: {value!r}"
        ) from exc
    if amount < 0:
        raise MalformedTransactionError(f"Negative transaction value: {value!r}")
    return str(amount)


def normalize_solana_transaction(
    result: Mapping[str, Any], signature: Optional[str] = None
) -> NormalizedTransaction:
    """Normalize a `getTransaction` (jsonParsed) result for Solana.

    The first System Program transfer, outer or inner, supplies the parties
    and the lamport amount. Without one, the fee payer is reported as sender
    with a zero value.
    """
    if not isinstance(result, Mapping):
        raise MalformedTransactionError("Solana transaction result is empty")

    transaction = result.get("transaction") or {}
    message = transaction.get("message") or {}
    signatures = _as_list(transaction.get("signatures"))
    tx_hash = signature or (signatures[0] if signatures else None)
    if not tx_hash:
        raise MalformedTransactionError("Solana transaction has no signature")

    transfer = _find_system_transfer(
        [message.get("instructions")]
        + [
            group.get("instructions")
            for group in _as_list((result.get("meta") or {}).get("innerInstructions"))
            if isinstance(group, Mapping)
        ]
    )

    if transfer:
        from_address = transfer.get("source")
        to_address = transfer.get("destination")
        value = parse_value(transfer.get("lamports"))
    else:
        keys = _as_list(message.get("accountKeys"))
        first = keys[0] if keys else None
        from_address = first.get("pubkey") if isinstance(first, Mapping) else first
        to_address = None
        value = "0"

    if not from_address and not to_address:
        raise MalformedTransactionError(f"Transaction {tx_hash} has no addresses")

    return NormalizedTransaction(
        hash=tx_hash,
        chain_id=SOLANA_CHAIN_ID,
        from_address=from_address,
        to_address=to_address,
        value=value,
        confirmed=True,
        block_number=_optional_int(result.get("slot")),
        block_timestamp=_optional_int(result.get("blockTime")),
    )


def _find_system_transfer(
    instruction_groups: Iterable[Any],
) -> Optional[Dict[str, Any]]:
    for group in instruction_groups:
        for instruction in _as_list(group):
            if not isinstance(instruction, Mapping):
                continue
            is_system = (
                instruction.get("programId") == SYSTEM_PROGRAM_ID
                or instruction.get("program") == "system"
            )
            parsed = instruction.get("parsed")
            if not is_system or not isinstance(parsed, Mapping):
                continue
            if parsed.get("type") in SYSTEM_TRANSFER_TYPES:
                return dict(parsed.get("info") or {})
    return None


def _first_text(record: Mapping[str, Any], *keys: str) -> Optional[str]:
    for key in keys:
        value = record.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
    return None


def _optional_int(value: Any) -> Optional[int]:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        return None


def _as_list(value: Any) -> List[Any]:
    if isinstance(value, list):
        return value
    if isinstance(value, tuple):
        return list(value)
    return []

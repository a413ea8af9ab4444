"""Turn raw chain events into channel notifications."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Mapping, Optional

from blockmon.chains import (
    ChainInfo,
    RejectedTransactionError,
    UnsupportedChainError,
    require_chain,
)
from blockmon.lifecycle import PendingMessageCache
from blockmon.names import NameResolver
from blockmon.transport import Transport
from blockmon.utils.formatting import FALLBACK_MESSAGE, render_transaction
from blockmon.utils.logging import get_logger, log_context
from blockmon.utils.tx_parser import (
    NormalizedTransaction,
    RawRecord,
    normalize_record,
    split_webhook_batch,
)

logger = get_logger(__name__)


class Outcome(str, Enum):
    SENT = "sent"
    EDITED = "edited"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass
class IngestReport:
    """Per-batch tally of what happened to each transaction."""

    sent: int = 0
    edited: int = 0
    rejected: int = 0
    failed: int = 0

    @classmethod
    def from_outcomes(cls, outcomes: Iterable[Outcome]) -> "IngestReport":
        report = cls()
        for outcome in outcomes:
            setattr(report, outcome.value, getattr(report, outcome.value) + 1)
        return report

    @property
    def total(self) -> int:
        return self.sent + self.edited + self.rejected + self.failed


class NotificationPipeline:
    """Deliver one message per transaction, editing pending ones in place.

    The first unconfirmed event for a hash is sent and remembered in the
    pending cache. The next event for that hash, confirmed or not, edits the
    remembered message and clears the record, so any later event for the
    same hash is delivered as a fresh message. A confirmed event with no
    pending record is simply sent.
    """

    def __init__(
        self,
        transport: Transport,
        resolver: NameResolver,
        cache: Optional[PendingMessageCache] = None,
        chains: Optional[Mapping[int, ChainInfo]] = None,
    ) -> None:
        self.transport = transport
        self.resolver = resolver
        self.cache = cache if cache is not None else PendingMessageCache()
        self.chains = chains

    async def ingest(self, payload: Any) -> IngestReport:
        """Process a webhook payload; never raises."""
        try:
            raw_records = split_webhook_batch(payload)
        except RejectedTransactionError as exc:
            logger.warning("webhook_payload_rejected", error=str(exc))
            return IngestReport(rejected=1)

        outcomes = await asyncio.gather(
            *(self._process_raw(raw) for raw in raw_records)
        )
        report = IngestReport.from_outcomes(outcomes)
        logger.info(
            "webhook_batch_processed",
            sent=report.sent,
            edited=report.edited,
            rejected=report.rejected,
            failed=report.failed,
        )
        return report

    async def ingest_transactions(
        self, transactions: Iterable[NormalizedTransaction]
    ) -> IngestReport:
        """Process already normalized transactions concurrently."""
        outcomes = await asyncio.gather(*(self.process(tx) for tx in transactions))
        return IngestReport.from_outcomes(outcomes)

    async def _process_raw(self, raw: RawRecord) -> Outcome:
        try:
            tx = normalize_record(raw)
        except RejectedTransactionError as exc:
            logger.warning("transaction_rejected", kind=raw.kind, error=str(exc))
            return Outcome.REJECTED
        except Exception as exc:
            logger.error("transaction_normalize_failed", kind=raw.kind, error=str(exc))
            await self._send_fallback()
            return Outcome.FAILED
        return await self.process(tx)

    async def process(self, tx: NormalizedTransaction) -> Outcome:
        """Render and deliver a single transaction with isolated failures."""
        with log_context(tx_hash=tx.hash, chain_id=tx.chain_id):
            try:
                chain = require_chain(tx.chain_id, self.chains)
            except UnsupportedChainError as exc:
                logger.warning("transaction_rejected", error=str(exc))
                return Outcome.REJECTED

            message: Optional[str] = None
            try:
                # Taken before name lookups so events for one hash keep
                # their arrival order.
                async with self.cache.lock(tx.hash):
                    from_name, to_name = await self.resolver.resolve_pair(
                        tx.from_address, tx.to_address
                    )
                    message = render_transaction(tx, chain, from_name, to_name)
                    return await self._deliver(tx, message)
            except Exception as exc:
                logger.error("transaction_failed", error=str(exc), text=message)
                await self._send_fallback()
                return Outcome.FAILED

    async def _deliver(self, tx: NormalizedTransaction, message: str) -> Outcome:
        pending_id = self.cache.get(tx.hash)
        if pending_id is not None:
            # On failure the record stays so a later event can retry the edit.
            await self.transport.edit(pending_id, message)
            self.cache.pop(tx.hash)
            logger.info(
                "transaction_edited", message_id=pending_id, confirmed=tx.confirmed
            )
            return Outcome.EDITED

        message_id = await self.transport.send(message)
        if not tx.confirmed:
            self.cache.put(tx.hash, message_id)
        logger.info("transaction_sent", message_id=message_id, confirmed=tx.confirmed)
        return Outcome.SENT

    async def _send_fallback(self) -> None:
        try:
            await self.transport.send(FALLBACK_MESSAGE)
        except Exception as exc:
            logger.error("fallback_failed", error=str(exc))

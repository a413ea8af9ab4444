"""Tests for raw payload normalization."""

import pytest

from blockmon.chains import SOLANA_CHAIN_ID
from blockmon.utils.tx_parser import (
    MalformedTransactionError,
    RawRecord,
    normalize_record,
    normalize_solana_transaction,
    parse_value,
    split_webhook_batch,
)

FROM = "0x1111111111111111111111111111111111111111"
TO = "0x2222222222222222222222222222222222222222"


def moralis_batch(**overrides) -> dict:
    batch = {
        "confirmed": False,
        "chainId": "0x1",
        "streamId": "stream",
        "block": {"number": "19000000", "hash": "0xblock", "timestamp": "1700000000"},
        "txs": [
            {
                "hash": "0xaaa",
                "fromAddress": FROM,
                "toAddress": TO,
                "value": "1000000000000000000",
                "gas": "21000",
            }
        ],
        "txsInternal": [
            {
                "from": TO,
                "to": FROM,
                "value": "5",
                "transactionHash": "0xbbb",
                "gas": "2300",
            }
        ],
    }
    batch.update(overrides)
    return batch


class TestSplitWebhookBatch:
    def test_flattens_txs_and_internal_txs(self) -> None:
        records = split_webhook_batch(moralis_batch())
        assert [r.kind for r in records] == ["tx", "internal"]
        assert all(r.chain_id == "0x1" for r in records)

    def test_accepts_list_of_batches(self) -> None:
        records = split_webhook_batch([moralis_batch(), moralis_batch(txsInternal=[])])
        assert len(records) == 3

    def test_empty_batch_has_no_records(self) -> None:
        assert split_webhook_batch({"confirmed": True, "txs": []}) == []

    def test_rejects_non_object_payload(self) -> None:
        with pytest.raises(MalformedTransactionError):
            split_webhook_batch("not a payload")


class TestNormalizeRecord:
    def test_normalizes_transaction(self) -> None:
        tx = normalize_record(split_webhook_batch(moralis_batch())[0])
        assert tx.hash == "0xaaa"
        assert tx.chain_id == 1
        assert tx.from_address == FROM
        assert tx.to_address == TO
        assert tx.value == "1000000000000000000"
        assert tx.confirmed is False
        assert tx.block_number == 19000000
        assert tx.block_timestamp == 1700000000

    def test_internal_transaction_uses_parent_hash(self) -> None:
        tx = normalize_record(split_webhook_batch(moralis_batch(confirmed=True))[1])
        assert tx.hash == "0xbbb"
        assert tx.from_address == TO
        assert tx.to_address == FROM
        assert tx.value == "5"
        assert tx.confirmed is True

    def test_integer_chain_id(self) -> None:
        tx = normalize_record(split_webhook_batch(moralis_batch(chainId=137))[0])
        assert tx.chain_id == 137

    def test_missing_hash_is_malformed(self) -> None:
        raw = RawRecord(record={"from": FROM, "value": "1"}, chain_id="0x1")
        with pytest.raises(MalformedTransactionError):
            normalize_record(raw)

    def test_missing_addresses_is_malformed(self) -> None:
        raw = RawRecord(record={"hash": "0x1", "value": "1"}, chain_id="0x1")
        with pytest.raises(MalformedTransactionError):
            normalize_record(raw)

    def test_invalid_chain_id_is_malformed(self) -> None:
        raw = RawRecord(record={"hash": "0x1", "from": FROM}, chain_id="mainnet")
        with pytest.raises(MalformedTransactionError):
            normalize_record(raw)

    def test_contract_creation_without_recipient(self) -> None:
        raw = RawRecord(record={"hash": "0x1", "fromAddress": FROM}, chain_id="0x1")
        tx = normalize_record(raw)
        assert tx.to_address is None
        assert tx.value == "0"


class TestParseValue:
    def test_decimal_hex_and_int(self) -> None:
        assert parse_value("42") == "42"
        assert parse_value("0x2a") == "42"
        assert parse_value(42) == "42"
        assert parse_value(None) == "0"

    @pytest.mark.parametrize("value", ["-1", "1.5", "abc", 1.5, True])
    def test_invalid_values(self, value) -> None:
        with pytest.raises(MalformedTransactionError):
            parse_value(value)


class TestNormalizeSolanaTransaction:
    def _result(self, instructions, inner=None) -> dict:
        return {
            "slot": 250000000,
            "blockTime": 1700000000,
            "meta": {"err": None, "innerInstructions": inner or []},
            "transaction": {
                "signatures": ["5sig"],
                "message": {
                    "accountKeys": [{"pubkey": "FeePayer111"}, {"pubkey": "Other"}],
                    "instructions": instructions,
                },
            },
        }

    def test_uses_system_transfer(self) -> None:
        result = self._result(
            [
                {
                    "program": "system",
                    "programId": "11111111111111111111111111111111",
                    "parsed": {
                        "type": "transfer",
                        "info": {
                            "source": "Alice111",
                            "destination": "Bob222",
                            "lamports": 1500000000,
                        },
                    },
                }
            ]
        )
        tx = normalize_solana_transaction(result)
        assert tx.hash == "5sig"
        assert tx.chain_id == SOLANA_CHAIN_ID
        assert tx.from_address == "Alice111"
        assert tx.to_address == "Bob222"
        assert tx.value == "1500000000"
        assert tx.confirmed is True
        assert tx.block_number == 250000000

    def test_finds_inner_transfer(self) -> None:
        inner = [
            {
                "index": 0,
                "instructions": [
                    {
                        "program": "system",
                        "parsed": {
                            "type": "transfer",
                            "info": {
                                "source": "A",
                                "destination": "B",
                                "lamports": 7,
                            },
                        },
                    }
                ],
            }
        ]
        tx = normalize_solana_transaction(self._result([], inner), "explicit")
        assert tx.hash == "explicit"
        assert tx.value == "7"

    def test_without_transfer_reports_fee_payer(self) -> None:
        tx = normalize_solana_transaction(self._result([{"programId": "Token"}]))
        assert tx.from_address == "FeePayer111"
        assert tx.to_address is None
        assert tx.value == "0"

    def test_missing_signature_is_malformed(self) -> None:
        with pytest.raises(MalformedTransactionError):
            normalize_solana_transaction({"transaction": {"message": {}}})


def test_non_finite_block_fields_are_dropped() -> None:
    raw = RawRecord(
        record={"hash": "0x1", "fromAddress": FROM, "blockNumber": float("inf")},
        chain_id="0x1",
        block={"timestamp": float("-inf")},
    )
    tx = normalize_record(raw)
    assert tx.block_number is None
    assert tx.block_timestamp is None

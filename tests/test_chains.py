import pytest

from blockmon.chains import (
    DEFAULT_CHAINS,
    SOLANA_CHAIN_ID,
    ChainInfo,
    RejectedTransactionError,
    UnsupportedChainError,
    lookup_chain,
    parse_chain_id,
    require_chain,
)


def test_registry_covers_supported_chains():
    assert sorted(DEFAULT_CHAINS) == [
        1,
        10,
        56,
        SOLANA_CHAIN_ID,
        137,
        250,
        8453,
        42161,
        43114,
    ]
    assert DEFAULT_CHAINS[56].native_currency == "BNB"
    assert DEFAULT_CHAINS[137].native_currency == "MATIC"
    assert DEFAULT_CHAINS[SOLANA_CHAIN_ID].decimals == 9


def test_explorer_urls():
    eth = DEFAULT_CHAINS[1]
    assert eth.tx_url("0xabc") == "https://etherscan.io/tx/0xabc"
    assert eth.address_url("0xdef") == "https://etherscan.io/address/0xdef"
    sol = DEFAULT_CHAINS[SOLANA_CHAIN_ID]
    assert sol.address_url("Abc") == "https://solscan.io/account/Abc"
    assert sol.tx_url("5sig") == "https://solscan.io/tx/5sig"


def test_value_scale():
    assert DEFAULT_CHAINS[1].value_scale == 10**18
    assert DEFAULT_CHAINS[SOLANA_CHAIN_ID].value_scale == 10**9


def test_lookup_and_require():
    assert lookup_chain(8453).name == "Base"
    assert lookup_chain(99999) is None

    with pytest.raises(UnsupportedChainError) as excinfo:
        require_chain(99999)
    assert excinfo.value.chain_id == 99999
    assert isinstance(excinfo.value, RejectedTransactionError)


def test_custom_registry():
    custom = {5: ChainInfo(5, "Goerli", "ETH", 18, "https://goerli.etherscan.io/")}
    assert require_chain(5, custom).name == "Goerli"
    assert lookup_chain(1, custom) is None


@pytest.mark.parametrize(
    "value,expected",
    [("0x1", 1), ("0X89", 137), ("56", 56), (" 8453 ", 8453), (43114, 43114)],
)
def test_parse_chain_id(value, expected):
    assert parse_chain_id(value) == expected


@pytest.mark.parametrize("value", [None, True, "base", 1.0, ""])
def test_parse_chain_id_rejects_garbage(value):
    with pytest.raises(ValueError):
        parse_chain_id(value)

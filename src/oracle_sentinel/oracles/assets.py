"""Static ticker -> upstream identifier tables for each oracle.

These tables are read-only. Config may replace a table wholesale
(``oracles.<name>.assets``); nothing mutates them at runtime.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from oracle_sentinel.core.models import OracleName, Ticker

# CoinGecko coin ids (Chainlink-labelled market index)
CHAINLINK_ASSETS: Mapping[Ticker, str] = MappingProxyType({
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "LTC": "litecoin",
    "ADA": "cardano",
    "DOT": "polkadot",
    "BNB": "binancecoin",
    "XRP": "ripple",
    "MATIC": "matic-network",
    "DOGE": "dogecoin",
    "SHIB": "shiba-inu",
    "AVAX": "avalanche-2",
    "LINK": "chainlink",
    "XLM": "stellar",
    "TRX": "tron",
    "VET": "vechain",
    "FIL": "filecoin",
    "ATOM": "cosmos",
    "ALGO": "algorand",
    "ICP": "internet-computer",
    "APT": "aptos",
    "ARB": "arbitrum",
    "OP": "optimism",
    "SUI": "sui",
    "HBAR": "hedera-hashgraph",
    "GRT": "the-graph",
    "AAVE": "aave",
    "SNX": "synthetix-network-token",
    "CAKE": "pancakeswap-token",
    "UNI": "uniswap",
})

# RedStone symbols are the tickers themselves
REDSTONE_ASSETS: Mapping[Ticker, str] = MappingProxyType({
    symbol: symbol
    for symbol in (
        "BTC", "ETH", "SOL", "LTC", "ADA", "DOT", "BNB", "XRP",
        "MATIC", "DOGE", "SHIB", "AVAX", "LINK", "XLM", "TRX",
        "VET", "FIL", "ATOM", "ALGO", "ICP", "APT", "ARB", "OP",
        "SUI", "HBAR", "GRT", "AAVE", "SNX", "CAKE", "UNI", "CRV",
    )
})

# Pyth Hermes price feed ids for the <TICKER>/USD pairs
PYTH_ASSETS: Mapping[Ticker, str] = MappingProxyType({
    "BTC": "e62df6c8b4a85fe1a67db44dc12de5db330f7ac66b72dc658afedf0f4a415b43",
    "ETH": "ff61491a931112ddf1bd8147cd1b641375f79f82825126dba6327b2b1b53c4f7",
    "SOL": "ef0d8b6fda2ceba41da15d4095d1da392a0d2f8ed0c6c7bc0f4cfac8c280b56d",
    "ADA": "2a01deaec9e51a579277b34b122399984d0bbf57e2458a7e42fecd2829867a0d",
    "DOGE": "dcef50dd0a4cd2dcc17e45df1676dcb336a11a61c69df7a0299b0150c672d25c",
    "XRP": "ec5d399846a9209f3fe5881d70aae9268c94339ff9817e8d18ff19fa05eea1c8",
    "AVAX": "93da3352f9f1d105fdfe4971cfa80e9dd777bfc5d0f683ebb6e1294b92137bb7",
    "LINK": "8ac0c70fff57e9aefdf5edf44b51d62c2d433653cbb2cf5cc06bb115af04d221",
    "BNB": "2f95862b045670cd22bee3114c39763a4a08beeb663b145d283c31d7d1101c4f",
    "DOT": "ca3eed9b267293f6595901c734c7525ce8ef49adafe8284606ceb307afa2ca5b",
    "LTC": "6e3f3fa8253588df9326580180233eb791e03b443a3ba7a1d892e73874e19a54",
    "UNI": "78d185a741d07edb3412b09008b7c5cfb9bbbd7d568bf00ba737b456ba171501",
    "ATOM": "b00b60f88b03a6a625a8d1c048c3f66653edf217439983d037e7222c4e612819",
    "ARB": "3fa4252848f9f0a1480be62745a4629d9eb1322aebab8a791e344b3b9c1adcf5",
    "OP": "385f64d993f7b77d8182ed5003d97c60aa3361f3cecfe711544d2d59165e9bdf",
    "SUI": "23d7315113f5b1d3ba7a83604c44b94d79f4fd69af77f804fc7f920a6dc65744",
    "APT": "03ae4db29ed4ae33d323568895aa00337e658e348b37509f5372ae51f0af00d5",
    "AAVE": "2b9ab1e972a281585084148ba1389800799bd4be63b957507db1349314e47445",
    "TRX": "67aed5a24fdad045475e7195c98a98aea119c763f272d4523f5bac93a4f33c2b",
})

DEFAULT_ASSETS: Mapping[OracleName, Mapping[Ticker, str]] = MappingProxyType({
    OracleName.CHAINLINK: CHAINLINK_ASSETS,
    OracleName.REDSTONE: REDSTONE_ASSETS,
    OracleName.PYTH: PYTH_ASSETS,
})


def resolve_asset_table(
    oracle: OracleName, override: Mapping[str, str] | None = None
) -> Mapping[Ticker, str]:
    """Return the frozen table for an oracle, honoring a config override."""
    if override is None:
        return DEFAULT_ASSETS[oracle]
    return MappingProxyType(
        {k.strip().upper(): v for k, v in override.items() if k.strip()}
    )

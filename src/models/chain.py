"""Supported chains and address handling.

EVM addresses are hex and case-insensitive, so they are case-folded before
any comparison. Solana addresses are base58 and compared exactly.
"""

import re
from dataclasses import dataclass, field
from enum import StrEnum

from src.exceptions import InvalidAddressError, UnsupportedChainError


class ChainId(StrEnum):
    SOLANA = "solana"
    BASE = "base"
    BSC = "bsc"


@dataclass(frozen=True)
class ChainConfig:
    id: ChainId
    name: str
    native_symbol: str
    native_decimals: int
    dexscreener_chain_id: str
    address_pattern: re.Pattern[str]
    is_evm: bool
    rate_limiter_key: str
    # token address → symbol; EVM keys are lower-case
    stablecoins: dict[str, str] = field(default_factory=dict)


SOLANA_ADDRESS_RE = re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")
EVM_ADDRESS_RE = re.compile(r"^0x[a-fA-F0-9]{40}$")

CHAIN_CONFIGS: dict[ChainId, ChainConfig] = {
    ChainId.SOLANA: ChainConfig(
        id=ChainId.SOLANA,
        name="Solana",
        native_symbol="SOL",
        native_decimals=9,
        dexscreener_chain_id="solana",
        address_pattern=SOLANA_ADDRESS_RE,
        is_evm=False,
        rate_limiter_key="helius",
        stablecoins={
            "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": "USDC",
            "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": "USDT",
            "2b1kV6DkPAnxd5ixfnxCpjxmKwqjjaYmCZfHsFu24GXo": "PYUSD",
        },
    ),
    ChainId.BASE: ChainConfig(
        id=ChainId.BASE,
        name="Base",
        native_symbol="ETH",
        native_decimals=18,
        dexscreener_chain_id="base",
        address_pattern=EVM_ADDRESS_RE,
        is_evm=True,
        rate_limiter_key="basescan",
        stablecoins={
            "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913": "USDC",
            "0x50c5725949a6f0c72e6c4a641f24049a917db0cb": "DAI",
        },
    ),
    ChainId.BSC: ChainConfig(
        id=ChainId.BSC,
        name="BNB Chain",
        native_symbol="BNB",
        native_decimals=18,
        dexscreener_chain_id="bsc",
        address_pattern=EVM_ADDRESS_RE,
        is_evm=True,
        rate_limiter_key="bscscan",
        stablecoins={
            "0x8ac76a51cc950d9822d68b83fe1ad97b32cd580d": "USDC",
            "0x55d398326f99059ff775485246999027b3197955": "USDT",
            "0xe9e7cea3dedca5984780bafc599bd69add087d56": "BUSD",
        },
    ),
}


def parse_chain(chain: str) -> ChainId:
    try:
        return ChainId(chain.strip().lower())
    except ValueError:
        raise UnsupportedChainError(f"Chain {chain!r} is not supported") from None


def normalize_address(chain: ChainId, address: str) -> str:
    """Canonical form used for identity comparisons on this chain."""
    address = address.strip()
    if CHAIN_CONFIGS[chain].is_evm:
        return address.lower()
    return address


def is_valid_address(chain: ChainId, address: str) -> bool:
    return bool(CHAIN_CONFIGS[chain].address_pattern.match(address.strip()))


def validate_address(chain: ChainId, address: str) -> str:
    """Return the stripped address or raise InvalidAddressError."""
    if not address or not is_valid_address(chain, address):
        raise InvalidAddressError(f"{address!r} is not a valid {CHAIN_CONFIGS[chain].name} address")
    return address.strip()


def stablecoin_symbol(chain: ChainId, token_address: str) -> str | None:
    return CHAIN_CONFIGS[chain].stablecoins.get(normalize_address(chain, token_address))

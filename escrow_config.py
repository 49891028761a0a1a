"""
Configuration for the escrow reward submitter.

Values come from environment variables (a .env file is loaded by the entry
points with python-dotenv). Everything is validated when the config object
is built, so a bad setup fails before any RPC call is made.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Mapping, Optional

from web3 import Web3

DEFAULT_PROVIDER_URL = "https://your.ethereum.node"
DEFAULT_DECIMALS = 18
DEFAULT_RECEIPT_TIMEOUT = 120

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class ConfigError(Exception):
    """Required setting missing or invalid."""


@dataclass(frozen=True)
class EscrowConfig:
    private_key: str = field(repr=False)
    contract_address: str
    provider_url: str = DEFAULT_PROVIDER_URL
    abi_path: Optional[str] = None
    decimals: int = DEFAULT_DECIMALS
    receipt_timeout: float = DEFAULT_RECEIPT_TIMEOUT
    gas_limit: Optional[int] = None
    gas_price_gwei: Optional[float] = None

    def __post_init__(self):
        if not self.private_key or not self.private_key.strip():
            raise ConfigError("PRIVATE_KEY is not defined in the environment variables.")
        if not self.provider_url:
            raise ConfigError("PROVIDER_URL must not be empty.")

        if not self.contract_address:
            raise ConfigError("ESCROW_CONTRACT_ADDRESS is not defined in the environment variables.")
        if not Web3.is_address(self.contract_address):
            raise ConfigError(f"Invalid escrow contract address: {self.contract_address!r}")
        checksummed = Web3.to_checksum_address(self.contract_address)
        # No contract lives there; calls would be mined without paying anyone
        if checksummed == ZERO_ADDRESS:
            raise ConfigError("ESCROW_CONTRACT_ADDRESS must not be the zero address.")
        # frozen dataclass, so go through object.__setattr__
        object.__setattr__(self, "contract_address", checksummed)

        if self.decimals < 0:
            raise ConfigError("REWARD_DECIMALS must be zero or positive.")
        if self.receipt_timeout <= 0:
            raise ConfigError("RECEIPT_TIMEOUT must be positive.")
        if self.gas_limit is not None and self.gas_limit <= 0:
            raise ConfigError("GAS_LIMIT must be positive.")
        if self.gas_price_gwei is not None and self.gas_price_gwei <= 0:
            raise ConfigError("GAS_PRICE_GWEI must be positive.")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "EscrowConfig":
        """
        Build the config from environment variables.

        PRIVATE_KEY and ESCROW_CONTRACT_ADDRESS are required; PROVIDER_URL
        falls back to the default node. Pass ``env`` to read from a mapping
        other than os.environ.
        """
        if env is None:
            env = os.environ

        private_key = (env.get("PRIVATE_KEY") or "").strip()
        if not private_key:
            raise ConfigError("PRIVATE_KEY is not defined in the environment variables.")

        return cls(
            private_key=private_key,
            contract_address=(env.get("ESCROW_CONTRACT_ADDRESS") or "").strip(),
            provider_url=(env.get("PROVIDER_URL") or "").strip() or DEFAULT_PROVIDER_URL,
            abi_path=(env.get("ESCROW_ABI_PATH") or "").strip() or None,
            decimals=_parse_number(env, "REWARD_DECIMALS", int, DEFAULT_DECIMALS),
            receipt_timeout=_parse_number(env, "RECEIPT_TIMEOUT", float, DEFAULT_RECEIPT_TIMEOUT),
            gas_limit=_parse_number(env, "GAS_LIMIT", int, None),
            gas_price_gwei=_parse_number(env, "GAS_PRICE_GWEI", float, None),
        )


def _parse_number(env, name, kind, default):
    raw = (env.get(name) or "").strip()
    if not raw:
        return default
    try:
        return kind(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}") from None

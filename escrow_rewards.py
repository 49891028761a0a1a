"""
Reward winners of an escrow contract in a single transaction.

Winner addresses are checksummed and amounts scaled to integer base units
before anything is sent, so one bad element stops the whole batch. The
transaction is signed locally with the configured key, sent through the
configured RPC node, and awaited until a receipt comes back.

Failures are logged and returned as a RewardFailure; the caller decides
whether to raise, retry or report them.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional, Sequence, Tuple, Union

from eth_account import Account
from web3 import Web3

from contract_data import contract_abi, load_abi
from escrow_config import DEFAULT_DECIMALS, ConfigError, EscrowConfig

logger = logging.getLogger(__name__)

Amount = Union[int, float, str, Decimal]

UINT256_MAX = 2 ** 256 - 1


class RewardError(Exception):
    """Base class for failures while rewarding winners."""


class InvalidAddressError(RewardError, ValueError):
    pass


class InvalidAmountError(RewardError, ValueError):
    pass


class LengthMismatchError(RewardError, ValueError):
    pass


class EmptyRewardError(RewardError, ValueError):
    pass


class TransactionRevertedError(RewardError):
    def __init__(self, tx_hash, receipt):
        super().__init__(f"Transaction {tx_hash} reverted")
        self.tx_hash = tx_hash
        self.receipt = receipt


@dataclass(frozen=True)
class RewardSuccess:
    tx_hash: str
    receipt: Any
    winners: List[str]
    amounts: List[int]

    ok = True


@dataclass(frozen=True)
class RewardFailure:
    error: Exception
    tx_hash: Optional[str] = None

    ok = False


RewardResult = Union[RewardSuccess, RewardFailure]


def normalize_address(raw: str) -> str:
    """Return the EIP-55 checksummed form of ``raw``."""
    if not isinstance(raw, str) or not Web3.is_address(raw):
        raise InvalidAddressError(f"Invalid address: {raw!r}")
    return Web3.to_checksum_address(raw)


def to_base_units(amount: Amount, decimals: int = DEFAULT_DECIMALS) -> int:
    """
    Scale a decimal amount to integer base units (amount * 10**decimals).

    The amount is read from its string form, so 2.5 becomes exactly
    2500000000000000000 for 18 decimals. More fractional digits than
    ``decimals`` is an error rather than a silent truncation.
    """
    if isinstance(amount, bool):
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise InvalidAmountError(f"Invalid amount: {amount!r}") from None

    if not value.is_finite():
        raise InvalidAmountError(f"Invalid amount: {amount!r}")
    if value < 0:
        raise InvalidAmountError(f"Amount must not be negative: {amount!r}")

    _, digits, exponent = value.as_tuple()
    coefficient = int("".join(str(d) for d in digits) or "0")
    if coefficient == 0:
        return 0
    # uint256 holds at most 78 digits
    if value.adjusted() + decimals > 77:
        raise InvalidAmountError(f"Amount {amount!r} does not fit in uint256")

    shift = decimals + exponent
    if shift >= 0:
        units = coefficient * 10 ** shift
    else:
        if -shift > len(digits):
            raise InvalidAmountError(f"Amount {amount!r} has more than {decimals} decimal places")
        units, remainder = divmod(coefficient, 10 ** -shift)
        if remainder:
            raise InvalidAmountError(f"Amount {amount!r} has more than {decimals} decimal places")

    if units > UINT256_MAX:
        raise InvalidAmountError(f"Amount {amount!r} does not fit in uint256")
    return units


def from_base_units(value: int, decimals: int = DEFAULT_DECIMALS) -> Decimal:
    """Inverse of to_base_units."""
    sign = 1 if value < 0 else 0
    return Decimal((sign, tuple(int(c) for c in str(abs(value))), -decimals))


def normalize_rewards(
    winners: Sequence[str],
    amounts: Sequence[Amount],
    decimals: int = DEFAULT_DECIMALS,
) -> Tuple[List[str], List[int]]:
    """Validate the parallel lists and convert them to contract call arguments."""
    if isinstance(winners, (str, bytes)):
        raise InvalidAddressError("winners must be a list of addresses")
    if isinstance(amounts, (str, bytes)):
        raise InvalidAmountError("amounts must be a list of numbers")

    winners = list(winners)
    amounts = list(amounts)
    if len(winners) != len(amounts):
        raise LengthMismatchError(
            f"Got {len(winners)} winners but {len(amounts)} amounts"
        )
    if not winners:
        raise EmptyRewardError("No winners to reward")

    base_units = [to_base_units(amount, decimals) for amount in amounts]
    addresses = [normalize_address(winner) for winner in winners]
    return addresses, base_units


class RewardSubmitter:
    """
    Sends rewardWinners transactions to the escrow contract.

    Nonce lookup, signing and sending are serialized per submitter, so
    concurrent calls on one instance never reuse a nonce. Waiting for the
    receipt is not serialized.
    """

    def __init__(self, config: EscrowConfig, w3: Optional[Web3] = None):
        self.config = config
        self.w3 = w3 if w3 is not None else Web3(Web3.HTTPProvider(config.provider_url))

        try:
            self.account = Account.from_key(config.private_key)
        except Exception as e:
            raise ConfigError("PRIVATE_KEY is not a valid private key.") from e

        abi = contract_abi
        if config.abi_path:
            try:
                abi = load_abi(config.abi_path)
            except (OSError, ValueError) as e:
                raise ConfigError(f"Could not load escrow ABI from {config.abi_path}: {e}") from e

        self.contract = self.w3.eth.contract(address=config.contract_address, abi=abi)
        self._send_lock = threading.Lock()

    def reward_winners(self, winners: Sequence[str], amounts: Sequence[Amount]) -> RewardResult:
        try:
            addresses, base_units = normalize_rewards(winners, amounts, self.config.decimals)
        except RewardError as e:
            logger.error("Rejected reward request: %s", e)
            return RewardFailure(e)

        tx_hash = None
        try:
            tx_hash = self._send(addresses, base_units)
            logger.info("Transaction sent: %s", tx_hash)

            receipt = self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self.config.receipt_timeout
            )
            if receipt["status"] != 1:
                raise TransactionRevertedError(tx_hash, receipt)
            logger.info(
                "Transaction confirmed: %s in block %s, gas used %s",
                Web3.to_hex(receipt["transactionHash"]),
                receipt["blockNumber"],
                receipt.get("gasUsed"),
            )
        except Exception as e:
            logger.exception("Error sending transaction %s", tx_hash or "(not sent)")
            return RewardFailure(e, tx_hash=tx_hash)

        return RewardSuccess(tx_hash=tx_hash, receipt=receipt, winners=addresses, amounts=base_units)

    def _send(self, addresses, base_units):
        call = self.contract.functions.rewardWinners(addresses, base_units)

        with self._send_lock:
            params = {
                "from": self.account.address,
                "nonce": self.w3.eth.get_transaction_count(self.account.address, "pending"),
            }
            if self.config.gas_limit:
                params["gas"] = self.config.gas_limit
            if self.config.gas_price_gwei:
                params["gasPrice"] = Web3.to_wei(Decimal(str(self.config.gas_price_gwei)), "gwei")

            txn = call.build_transaction(params)
            signed = self.account.sign_transaction(txn)
            tx_hash = self.w3.eth.send_raw_transaction(signed.raw_transaction)

        return Web3.to_hex(tx_hash)


def reward_winners(
    winners: Sequence[str],
    amounts: Sequence[Amount],
    config: Optional[EscrowConfig] = None,
) -> RewardResult:
    """One-shot helper: build a submitter (from the environment by default) and send."""
    if config is None:
        config = EscrowConfig.from_env()
    return RewardSubmitter(config).reward_winners(winners, amounts)

"""
Pytest fixtures for escrow reward tests.

The web3 collaborator is a MagicMock so nothing touches the network; signing
runs for real with eth-account against a well-known development key.
"""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from hexbytes import HexBytes

from escrow_config import EscrowConfig
from escrow_rewards import RewardSubmitter

# Hardhat/Anvil development account #0
PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
SIGNER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"

ESCROW_ADDRESS = "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"

# EIP-55 reference addresses
WINNER_A = "0xfB6916095ca1df60bB79Ce92cE3Ea74c37c5d359"
WINNER_B = "0xdbF03B407c01E7cD3CBea99509d93f8DDDC8C6FB"

TX_HASH = "0x" + "ab" * 32

# What build_transaction would return for a legacy-fee chain
BUILT_TX = {
    "to": ESCROW_ADDRESS,
    "value": 0,
    "gas": 200000,
    "gasPrice": 10_000_000_000,
    "nonce": 0,
    "chainId": 31337,
    "data": "0x",
}


@pytest.fixture
def escrow_config():
    return EscrowConfig(
        private_key=PRIVATE_KEY,
        provider_url="http://127.0.0.1:8545",
        contract_address=ESCROW_ADDRESS.lower(),
    )


@pytest.fixture
def fake_w3():
    w3 = MagicMock()
    w3.eth.get_transaction_count.return_value = 0
    w3.eth.send_raw_transaction.return_value = HexBytes(TX_HASH)
    w3.eth.wait_for_transaction_receipt.return_value = {
        "status": 1,
        "blockNumber": 42,
        "gasUsed": 51234,
        "transactionHash": HexBytes(TX_HASH),
    }
    contract = w3.eth.contract.return_value
    contract.functions.rewardWinners.return_value.build_transaction.side_effect = lambda params: dict(BUILT_TX)
    return w3


@pytest.fixture
def reward_call(fake_w3):
    """The mock standing in for contract.functions.rewardWinners."""
    return fake_w3.eth.contract.return_value.functions.rewardWinners


@pytest.fixture
def submitter(escrow_config, fake_w3):
    return RewardSubmitter(escrow_config, w3=fake_w3)

import json

contract_abi = [
    {
        "inputs": [{"internalType": "address[]", "name": "winners", "type": "address[]"},
                   {"internalType": "uint256[]", "name": "amounts", "type": "uint256[]"}],
        "name": "rewardWinners",
        "outputs": [],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]


def load_abi(path):
    """Read an ABI from a compiled artifact ({"abi": [...]}) or a bare ABI list."""
    with open(path) as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("abi")
    if not isinstance(data, list):
        raise ValueError(f"No ABI list found in {path}")
    return data
